"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from functools import lru_cache

from fastapi import Request

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.smtp.console import ConsoleNotificationDispatcher
from src.adapters.smtp.sender import SmtpNotificationDispatcher
from src.config.settings import get_settings
from src.domain.ledger import VerificationLedger
from src.domain.ports import MembershipStore, NotificationDispatcher, PasswordHasher
from src.domain.registry import MembershipRegistry
from src.domain.tokens import TokenIssuer


def get_store(request: Request) -> MembershipStore:
    """
    Get membership store from app state.

    The store is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.store


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Get bcrypt hasher (singleton, stateless)."""
    return BcryptPasswordHasher(cost=get_settings().bcrypt_cost)


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """Get the configured verification email dispatcher (singleton)."""
    settings = get_settings()
    if settings.email_backend == "smtp":
        return SmtpNotificationDispatcher(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.smtp_from,
            base_url=settings.verify_base_url,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleNotificationDispatcher(base_url=settings.verify_base_url)


def get_verification_ledger(request: Request) -> VerificationLedger:
    """Create verification ledger over the shared store."""
    store = get_store(request)
    return VerificationLedger(store=store, token_issuer=TokenIssuer(store=store))


def get_membership_registry(request: Request) -> MembershipRegistry:
    """
    Create membership registry with injected dependencies.

    Wires together the store, hasher, dispatcher and token services.
    """
    settings = get_settings()
    store = get_store(request)
    token_issuer = TokenIssuer(store=store)
    return MembershipRegistry(
        store=store,
        password_hasher=get_password_hasher(),
        dispatcher=get_dispatcher(),
        token_issuer=token_issuer,
        ledger=VerificationLedger(store=store, token_issuer=token_issuer),
        institution_domain=settings.institution_domain,
        resend_cooldown_seconds=settings.resend_cooldown_seconds,
    )
