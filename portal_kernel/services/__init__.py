"""Kernel services: command handlers over the entity store."""

from portal_kernel.services.base import BaseService
from portal_kernel.services.portal import Portal
from portal_kernel.services.portfolio_service import ClientPortfolioService, Invitation
from portal_kernel.services.session_controller import SessionController
from portal_kernel.services.sync_engine import SynchronizationEngine

__all__ = [
    "BaseService",
    "ClientPortfolioService",
    "Invitation",
    "Portal",
    "SessionController",
    "SynchronizationEngine",
]
