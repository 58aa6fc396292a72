"""
Generate a key for ENCRYPTION_KEY.
"""

from __future__ import annotations

from Security.key_management import generate_key


def main() -> None:
    print(generate_key())


if __name__ == "__main__":
    main()
