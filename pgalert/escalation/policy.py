"""Escalation policy lookup with a built-in fallback."""

from __future__ import annotations

import datetime

import structlog

from pgalert.core.config import EscalationConfig
from pgalert.core.exceptions import ConfigurationError
from pgalert.core.types import EscalationPolicy, EscalationTier
from pgalert.storage.base import EscalationPolicyRepository

logger = structlog.get_logger(__name__)

DEFAULT_POLICY_ID = "__default__"


def default_policy(config: EscalationConfig) -> EscalationPolicy:
    """Single tier that notifies ``default_target`` every ``fallback_delay_secs``."""
    return EscalationPolicy(
        id=DEFAULT_POLICY_ID,
        name="default",
        description="Fallback used when an alert has no resolvable policy",
        tiers=(
            EscalationTier(
                delay=datetime.timedelta(seconds=config.fallback_delay_secs),
                target=config.default_target,
            ),
        ),
    )


def validate_policy(policy: EscalationPolicy) -> None:
    """Raise ConfigurationError if a policy cannot drive escalation."""
    if not policy.tiers:
        raise ConfigurationError(f"Escalation policy {policy.id!r} has no tiers")
    for number, tier in enumerate(policy.tiers, start=1):
        if tier.delay < datetime.timedelta(0):
            raise ConfigurationError(
                f"Escalation policy {policy.id!r} tier {number} has a negative delay"
            )
        if not tier.target.strip():
            raise ConfigurationError(
                f"Escalation policy {policy.id!r} tier {number} has no target"
            )


class PolicyResolver:
    """Finds the policy governing an alert.

    An alert without a policy id uses ``default_policy_id`` and then the
    built-in fallback. An id that the repository does not know is a
    configuration error: it is logged and the fallback is used so the alert
    is still notified.
    """

    def __init__(
        self,
        repository: EscalationPolicyRepository,
        config: EscalationConfig,
    ) -> None:
        self._repo = repository
        self._config = config
        self._fallback = default_policy(config)

    @property
    def fallback(self) -> EscalationPolicy:
        return self._fallback

    async def get(self, policy_id: str | None) -> EscalationPolicy:
        """Return the policy for *policy_id* without falling back.

        Raises:
            ConfigurationError: the id is unknown or the policy has no tiers.
        """
        policy_id = policy_id or self._config.default_policy_id
        if policy_id is None or policy_id == DEFAULT_POLICY_ID:
            return self._fallback

        policy = await self._repo.get(policy_id)
        if policy is None or not policy.tiers:
            raise ConfigurationError(
                f"Escalation policy {policy_id!r} is unknown or has no tiers"
            )
        return policy

    async def resolve(self, policy_id: str | None, alert_id: str = "") -> EscalationPolicy:
        try:
            return await self.get(policy_id)
        except ConfigurationError as exc:
            logger.error(
                "escalation_policy_unresolved",
                policy_id=policy_id,
                alert_id=alert_id,
                error=str(exc),
            )
            return self._fallback
