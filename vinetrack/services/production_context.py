from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .subscription_features import SubscriptionFeatures

PRODUCTION_MODULE = 'production'


class ProductionAccessError(PermissionError):
    """Raised when the organization's tier does not include the production module."""

    def __init__(self, tier: str, module_id: str = PRODUCTION_MODULE):
        self.tier = tier
        self.module_id = module_id
        required = SubscriptionFeatures.minimum_tier_for_module(module_id)
        super().__init__(
            f"The {module_id} module requires the {SubscriptionFeatures.TIER_NAMES.get(required, required)} plan"
        )


@dataclass(frozen=True)
class ProductionContext:
    """Who is acting, for which organization, on which plan."""
    organization_id: int
    user_id: Optional[int] = None
    subscription_tier: str = 'free'

    @classmethod
    def from_user(cls, user) -> "ProductionContext":
        organization = getattr(user, 'organization', None)
        return cls(
            organization_id=user.organization_id,
            user_id=user.id,
            subscription_tier=SubscriptionFeatures.normalize_tier(
                getattr(organization, 'subscription_tier', None)
            ),
        )

    @classmethod
    def from_organization(cls, organization, user_id: Optional[int] = None) -> "ProductionContext":
        return cls(
            organization_id=organization.id,
            user_id=user_id,
            subscription_tier=SubscriptionFeatures.normalize_tier(organization.subscription_tier),
        )

    def has_module(self, module_id: str) -> bool:
        return SubscriptionFeatures.tier_has_module(self.subscription_tier, module_id)

    def require_module(self, module_id: str = PRODUCTION_MODULE) -> None:
        if not self.has_module(module_id):
            raise ProductionAccessError(self.subscription_tier, module_id)
