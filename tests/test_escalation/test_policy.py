"""Tests for escalation policy validation and resolution."""

from __future__ import annotations

import datetime

import pytest

from pgalert.core.config import EscalationConfig
from pgalert.core.exceptions import ConfigurationError
from pgalert.core.types import EscalationPolicy, EscalationTier
from pgalert.escalation.policy import (
    DEFAULT_POLICY_ID,
    PolicyResolver,
    default_policy,
    validate_policy,
)
from pgalert.storage.memory import InMemoryEscalationPolicyRepository

MINUTE = datetime.timedelta(minutes=1)

STANDARD = EscalationPolicy(
    id="standard",
    name="Standard",
    tiers=(
        EscalationTier(delay=5 * MINUTE, target="slack"),
        EscalationTier(delay=15 * MINUTE, target="all"),
    ),
)


# ── Tier model ──────────────────────────────────────────────────


class TestTiers:
    def test_delay_minutes_alias(self) -> None:
        tier = EscalationTier.model_validate({"delay_minutes": 5, "target": "slack"})
        assert tier.delay == 5 * MINUTE

    def test_tier_lookup_is_one_based_and_clamped(self) -> None:
        assert STANDARD.tier(1) is STANDARD.tiers[0]
        assert STANDARD.tier(2) is STANDARD.tiers[1]
        assert STANDARD.tier(7) is STANDARD.tiers[1]
        assert STANDARD.tier(0) is STANDARD.tiers[0]

    def test_empty_policy(self) -> None:
        policy = EscalationPolicy(id="empty")
        assert policy.max_tier == 0
        assert policy.tier(1) is None

    def test_display_text(self) -> None:
        assert EscalationTier(target="log").display_text == "log (Immediate)"
        assert STANDARD.tiers[1].display_text == "all (After 15 min)"


# ── validate_policy ─────────────────────────────────────────────


class TestValidatePolicy:
    def test_valid(self) -> None:
        validate_policy(STANDARD)

    def test_no_tiers(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_policy(EscalationPolicy(id="empty"))

    def test_negative_delay(self) -> None:
        policy = EscalationPolicy(id="bad", tiers=(EscalationTier(delay=-MINUTE),))
        with pytest.raises(ConfigurationError):
            validate_policy(policy)

    def test_blank_target(self) -> None:
        policy = EscalationPolicy(id="bad", tiers=(EscalationTier(target="  "),))
        with pytest.raises(ConfigurationError):
            validate_policy(policy)


# ── PolicyResolver ──────────────────────────────────────────────


class TestPolicyResolver:
    def _resolver(self, **cfg: object) -> PolicyResolver:
        repo = InMemoryEscalationPolicyRepository([STANDARD])
        return PolicyResolver(repo, EscalationConfig(**cfg))  # type: ignore[arg-type]

    def test_default_policy(self) -> None:
        policy = default_policy(EscalationConfig(fallback_delay_secs=120, default_target="log"))
        assert policy.id == DEFAULT_POLICY_ID
        assert policy.max_tier == 1
        assert policy.tiers[0].delay == 2 * MINUTE
        assert policy.tiers[0].target == "log"

    async def test_known_policy(self) -> None:
        assert await self._resolver().resolve("standard") == STANDARD

    async def test_no_id_uses_fallback(self) -> None:
        resolver = self._resolver()
        assert await resolver.resolve(None) == resolver.fallback

    async def test_no_id_uses_configured_default(self) -> None:
        resolver = self._resolver(default_policy_id="standard")
        assert await resolver.resolve(None) == STANDARD

    async def test_unknown_id_raises_on_get(self) -> None:
        with pytest.raises(ConfigurationError):
            await self._resolver().get("missing")

    async def test_unknown_id_resolves_to_fallback(self) -> None:
        resolver = self._resolver()
        assert await resolver.resolve("missing", "X-global") == resolver.fallback
