"""
Read-only selectors over the entity store.
"""

from portal_kernel.selectors.identity_resolver import IdentityResolver
from portal_kernel.selectors.portfolio_selector import (
    AccountantDashboard,
    ClientDashboard,
    PortfolioSelector,
)

__all__ = [
    "IdentityResolver",
    "PortfolioSelector",
    "AccountantDashboard",
    "ClientDashboard",
]
