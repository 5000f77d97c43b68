from __future__ import annotations

from dataclasses import dataclass, field

from werkzeug.security import check_password_hash, generate_password_hash


@dataclass(frozen=True)
class PasswordHasher:
    """
    One-way password hashing with a method/work factor fixed when the app is built.
    Verification reads the parameters from the stored hash, never from config.
    """

    method: str = "pbkdf2:sha256:600000"
    _dummy_hash: str = field(default="", init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Checked against when the email is unknown so both login failures cost the same.
        object.__setattr__(self, "_dummy_hash", generate_password_hash("dummy-password", method=self.method))

    def hash(self, password: str) -> str:
        return generate_password_hash(password, method=self.method)

    def verify(self, password_hash: str | None, password: str) -> bool:
        if not password_hash:
            check_password_hash(self._dummy_hash, password)
            return False
        return check_password_hash(password_hash, password)


def hasher_from_config(config: dict) -> PasswordHasher:
    return PasswordHasher(method=(config.get("PASSWORD_HASH_METHOD") or "pbkdf2:sha256:600000").strip())
