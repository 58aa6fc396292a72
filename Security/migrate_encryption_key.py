"""
Re-encrypt stored user fields under a new key.
Requires OLD_ENCRYPTION_KEY and ENCRYPTION_KEY to be set.

Usage:
  OLD_ENCRYPTION_KEY=k1.aesgcm256.... ENCRYPTION_KEY=k1.aesgcm256.... \
      python -m Security.migrate_encryption_key
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

from Security.field_level_encryption import FieldCipher, use_field_cipher


logger = logging.getLogger("security.key_rotation")


@dataclass
class RotationResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


def migrate_encryption_key(session_factory, old_key: str, new_key: str) -> RotationResult:
    """Decrypt every user with the old key and write it back under the new key."""
    from app.models import User

    # Reads accept the new key too, so rows rotated by an earlier partial run still load
    read_cipher = FieldCipher(new_key, [old_key])
    write_cipher = FieldCipher(new_key)
    result = RotationResult()

    db = session_factory()
    try:
        logger.info("Loading existing users...")
        with use_field_cipher(read_cipher):
            users = [
                (user.id, user.name, {field: getattr(user, field) for field in User.ENCRYPTED_FIELDS})
                for user in db.query(User).order_by(User.id).all()
            ]
        # Commits expire loaded objects; detach them so nothing reloads under the write key
        db.expunge_all()
        result.total = len(users)
        logger.info("Loaded %d user(s)", result.total)

        if not users:
            logger.info("Nothing to migrate")
            return result

        logger.info("Re-encrypting with key %s...", write_cipher.fingerprint)
        with use_field_cipher(write_cipher):
            for user_id, name, values in users:
                try:
                    updated = db.query(User).filter(User.id == user_id).update(
                        values, synchronize_session=False
                    )
                    if not updated:
                        raise LookupError(f"user {user_id} no longer exists")
                    db.commit()
                except Exception:
                    db.rollback()
                    result.failed += 1
                    logger.exception("  failed to migrate user %s", user_id)
                    continue
                result.succeeded += 1
                logger.info("  migrated user %s (%s)", user_id, name)
    finally:
        db.close()

    return result


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    old_key = os.getenv("OLD_ENCRYPTION_KEY")
    new_key = os.getenv("ENCRYPTION_KEY")
    if not old_key or not new_key:
        logger.error("Both OLD_ENCRYPTION_KEY and ENCRYPTION_KEY must be set")
        return 1

    from app.database import SessionLocal, init_db

    logger.info("Starting encryption key migration")
    try:
        init_db()
        result = migrate_encryption_key(SessionLocal, old_key, new_key)
    except Exception:
        logger.exception("Key migration aborted")
        return 1

    logger.info("Migration result: succeeded=%d failed=%d", result.succeeded, result.failed)
    if not result.ok:
        logger.warning("Some users could not be migrated")
        return 1
    logger.info("Migration complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
