from __future__ import annotations

from typing import Any, Dict, List

from faker import Faker
from sqlalchemy.orm import Session

from .models import User, utcnow

# bcrypt hash of the string "password"
DEFAULT_PASSWORD_HASH = "$2y$10$92IXUNpkjO0rOQ5byMi.Ye4oKoEa3Ro9llC/.og/at2.uheWG/igi"


class UserFactory:
    """Build fake users for tests and seed data.

    Every user shares the password ``"password"``; emails are unique
    for the lifetime of the factory's Faker instance.
    """

    model = User

    def __init__(self, fake: Faker | None = None, **state: Any) -> None:
        self.fake = fake or Faker()
        self._state = state

    def definition(self) -> Dict[str, Any]:
        return {
            "name": self.fake.name(),
            "email": self.fake.unique.safe_email(),
            "email_verified_at": utcnow(),
            "password_hash": DEFAULT_PASSWORD_HASH,
            "remember_token": self.fake.pystr(min_chars=10, max_chars=10),
        }

    def state(self, **overrides: Any) -> "UserFactory":
        return UserFactory(self.fake, **{**self._state, **overrides})

    def unverified(self) -> "UserFactory":
        return self.state(email_verified_at=None)

    def build(self, **overrides: Any) -> User:
        attrs = self.definition()
        attrs.update(self._state)
        attrs.update(overrides)
        return self.model(**attrs)

    def create(self, db: Session, **overrides: Any) -> User:
        user = self.build(**overrides)
        db.add(user)
        db.flush()
        return user

    def create_batch(self, db: Session, count: int, **overrides: Any) -> List[User]:
        return [self.create(db, **overrides) for _ in range(count)]
