"""User generator."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Iterator

from loan_pact.generators.base import BaseGenerator
from loan_pact.models import User


class UserGenerator(BaseGenerator):
    """Generate synthetic users with unique emails."""

    def generate(self, now: datetime | None = None) -> User:
        """Generate a single user.

        Parameters
        ----------
        now : datetime | None
            Reference time; ``created_at`` falls within the prior year.

        Returns
        -------
        User
            Generated user.
        """
        now = now or datetime.now()
        created_at = now - timedelta(days=random.randint(0, 365), minutes=random.randint(0, 1439))
        return User(
            id=self.fake.uuid4(),
            name=self.fake.name(),
            email=self.fake.unique.email(),
            phone=self.fake.phone_number(),
            reputation_score=random.randint(0, 100),
            created_at=created_at,
            updated_at=created_at,
        )

    def generate_batch(self, count: int, now: datetime | None = None) -> Iterator[User]:
        """Generate multiple users.

        Parameters
        ----------
        count : int
            Number of users to generate.
        now : datetime | None
            Reference time passed to ``generate``.

        Yields
        ------
        User
            Generated users.
        """
        for _ in range(count):
            yield self.generate(now)
