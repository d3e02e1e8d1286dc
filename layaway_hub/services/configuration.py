"""Financing configuration - the global markup and the categories open for layaway"""

import logging
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session, sessionmaker

from layaway_hub.config import settings
from layaway_hub.domain.exceptions import InvalidConfiguration
from layaway_hub.domain.models import FinancingConfiguration
from layaway_hub.infrastructure.database.repositories import ConfigurationRepository
from layaway_hub.infrastructure.database.session import session_scope


def configuration_repository(db: Session) -> ConfigurationRepository:
    return ConfigurationRepository(
        db,
        default_rate=settings.default_interest_rate_percent,
        default_categories=settings.default_allowed_categories,
    )


def validate_interest_rate(value: object) -> int:
    """
    Raises:
        InvalidConfiguration: not an integer in the configured range (0-40 by default)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"Interest rate must be a whole percentage, got {value!r}")

    low, high = settings.min_interest_rate_percent, settings.max_interest_rate_percent
    if not low <= value <= high:
        raise InvalidConfiguration(f"Interest rate must be between {low} and {high}, got {value}")
    return value


def clean_categories(categories: Iterable[str]) -> List[str]:
    """Trim labels, drop blanks and duplicates, keep first-seen order"""
    cleaned: List[str] = []
    seen = set()
    for label in categories:
        label = label.strip()
        if label and label.lower() not in seen:
            seen.add(label.lower())
            cleaned.append(label)
    return cleaned


def is_category_allowed(config: FinancingConfiguration, category: str) -> bool:
    wanted = category.strip().lower()
    return any(label.lower() == wanted for label in config.allowed_categories)


class ConfigurationService:
    """Reads and merge-updates the singleton FinancingConfiguration"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self) -> FinancingConfiguration:
        with session_scope(self.session_factory) as db:
            return configuration_repository(db).get()

    def update(
        self,
        interest_rate_percent: Optional[int] = None,
        allowed_categories: Optional[Iterable[str]] = None,
    ) -> FinancingConfiguration:
        """
        Merge the given fields into the stored configuration.

        Omitted fields keep their stored value. Validation happens before
        anything is written, so a bad rate never half-applies a category change.
        """
        fields = {}
        if interest_rate_percent is not None:
            fields["interest_rate_percent"] = validate_interest_rate(interest_rate_percent)
        if allowed_categories is not None:
            fields["allowed_categories"] = clean_categories(allowed_categories)

        with session_scope(self.session_factory) as db:
            repo = configuration_repository(db)
            config = repo.set(fields) if fields else repo.get()

        logging.info(
            "Financing configuration updated",
            extra={
                "step": "configure",
                "interest_rate_percent": config.interest_rate_percent,
                "allowed_categories": config.allowed_categories,
            },
        )
        return config

    def is_category_allowed(self, category: str) -> bool:
        return is_category_allowed(self.get(), category)
