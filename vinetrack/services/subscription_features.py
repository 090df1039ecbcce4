class SubscriptionFeatures:
    """Centralized management of subscription-tier based modules"""

    # Modules unlocked by each tier
    TIER_MODULES = {
        'free': ('planner',),
        'professional': ('planner', 'vineyard'),
        'estate': ('planner', 'vineyard', 'production', 'inventory'),
        'enterprise': ('planner', 'vineyard', 'production', 'inventory', 'sales'),
    }

    TIER_NAMES = {
        'free': 'Planner',
        'professional': 'Vineyard',
        'estate': 'Vineyard + Winery',
        'enterprise': 'End-to-End Platform',
    }

    # Tier hierarchy for comparison
    TIER_LEVELS = {
        'free': 0,
        'professional': 1,
        'estate': 2,
        'enterprise': 3,
    }

    @classmethod
    def normalize_tier(cls, tier):
        tier = (tier or 'free').strip().lower()
        return tier if tier in cls.TIER_LEVELS else 'free'

    @classmethod
    def modules_for_tier(cls, tier):
        return list(cls.TIER_MODULES[cls.normalize_tier(tier)])

    @classmethod
    def tier_has_module(cls, tier, module_id):
        """Check if a subscription tier unlocks a module"""
        return module_id in cls.TIER_MODULES[cls.normalize_tier(tier)]

    @classmethod
    def minimum_tier_for_module(cls, module_id):
        """Cheapest tier that includes the module, or None for unknown modules"""
        for tier in sorted(cls.TIER_LEVELS, key=cls.TIER_LEVELS.get):
            if module_id in cls.TIER_MODULES[tier]:
                return tier
        return None

    @classmethod
    def has_module(cls, module_id, organization=None):
        """Check if an organization's tier unlocks a module"""
        if organization is None:
            return False
        return cls.tier_has_module(getattr(organization, 'subscription_tier', None), module_id)
