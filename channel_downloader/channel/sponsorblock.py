"""
SponsorBlock segment skipping policy

A policy exists at two levels: one GLOBAL policy from the application
settings and an optional LOCAL policy per channel (inherited through the
channel tree). The effective policy for a download is chosen with these
rules, in order:

1. If neither policy is active, nothing is skipped.
2. If exactly one policy is active, that one is used.
3. If both are active, the local policy is used unless the global policy is
   forced globally, in which case the global one is used, unless the local
   policy overrides the global one, in which case the local one wins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ConfigurationError


# Category flag (document name) -> SponsorBlock category id, in emission order
SEGMENT_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ('skipSponsor', 'sponsor'),
    ('skipIntro', 'intro'),
    ('skipOutro', 'outro'),
    ('skipSelfPromo', 'selfpromo'),
    ('skipPreview', 'preview'),
    ('skipInteraction', 'interaction'),
    ('skipMusicOffTopic', 'music_offtopic'),
)

ALL_CATEGORIES = 'all'


class PolicyScope(Enum):
    """Level a policy was declared at"""
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class SegmentSkipPolicy:
    """
    Segment skipping configuration at one level

    Attributes:
        scope: GLOBAL (application settings) or LOCAL (channel tree)
        enabled: Master switch, defaults to True when a policy is declared
        force_globally: GLOBAL only, make the global policy win over local ones
        override_global: LOCAL only, make this policy win even over a forced global one
        skip_all: Skip every category
        skip_*: One flag per named segment category
    """
    scope: PolicyScope = PolicyScope.LOCAL
    enabled: bool = True
    force_globally: bool = False
    override_global: bool = False
    skip_all: bool = False
    skip_sponsor: bool = False
    skip_intro: bool = False
    skip_outro: bool = False
    skip_self_promo: bool = False
    skip_preview: bool = False
    skip_interaction: bool = False
    skip_music_off_topic: bool = False

    def __post_init__(self):
        if self.force_globally and self.scope is not PolicyScope.GLOBAL:
            raise ConfigurationError("forceGlobally is only valid on the global SponsorBlock policy")
        if self.override_global and self.scope is not PolicyScope.LOCAL:
            raise ConfigurationError("overrideGlobal is only valid on a channel SponsorBlock policy")

    @property
    def category_flags(self) -> Dict[str, bool]:
        return {
            'sponsor': self.skip_sponsor,
            'intro': self.skip_intro,
            'outro': self.skip_outro,
            'selfpromo': self.skip_self_promo,
            'preview': self.skip_preview,
            'interaction': self.skip_interaction,
            'music_offtopic': self.skip_music_off_topic,
        }

    @property
    def is_active(self) -> bool:
        return self.enabled and (self.skip_all or any(self.category_flags.values()))

    @property
    def categories(self) -> List[str]:
        """Categories to remove: ['all'] when skipping everything, else the enabled ones"""
        if self.skip_all:
            return [ALL_CATEGORIES]
        return [category for category, enabled in self.category_flags.items() if enabled]

    @classmethod
    def from_config(cls, data: Optional[Dict[str, Any]], scope: PolicyScope) -> Optional["SegmentSkipPolicy"]:
        """
        Build a policy from its document form

        Args:
            data: Mapping with camelCase flags (enabled, forceGlobally, skipAll, skipSponsor, ...)
            scope: Level the mapping was declared at

        Returns:
            Policy, or None when no mapping was given

        Raises:
            ConfigurationError: If the mapping is not a mapping or uses a flag invalid for the scope
        """
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ConfigurationError(f"SponsorBlock configuration must be a mapping, got: {data!r}")

        def flag(name: str, default: bool = False) -> bool:
            value = data.get(name, default)
            return bool(value) if value is not None else default

        return cls(
            scope=scope,
            enabled=flag('enabled', True),
            force_globally=flag('forceGlobally'),
            override_global=flag('overrideGlobal'),
            skip_all=flag('skipAll'),
            skip_sponsor=flag('skipSponsor'),
            skip_intro=flag('skipIntro'),
            skip_outro=flag('skipOutro'),
            skip_self_promo=flag('skipSelfPromo'),
            skip_preview=flag('skipPreview'),
            skip_interaction=flag('skipInteraction'),
            skip_music_off_topic=flag('skipMusicOffTopic'),
        )


@dataclass(frozen=True)
class EffectivePolicy:
    """
    Outcome of policy precedence

    Attributes:
        source: The policy that was selected, None when nothing is skipped
        categories: Categories to remove; empty means no skip directive is emitted
    """
    source: Optional[SegmentSkipPolicy] = None
    categories: Tuple[str, ...] = ()

    @property
    def is_active(self) -> bool:
        return bool(self.categories)

    @property
    def scope(self) -> Optional[PolicyScope]:
        return self.source.scope if self.source is not None else None


def resolve_policy(global_policy: Optional[SegmentSkipPolicy],
                   local_policy: Optional[SegmentSkipPolicy]) -> EffectivePolicy:
    """
    Choose the effective segment skipping policy for a download

    Args:
        global_policy: Policy from the application settings
        local_policy: Policy resolved for the channel

    Returns:
        EffectivePolicy with the selected source and its categories
    """
    global_active = global_policy is not None and global_policy.is_active
    local_active = local_policy is not None and local_policy.is_active

    if not global_active and not local_active:
        return EffectivePolicy()

    if global_active and local_active:
        use_global = global_policy.force_globally and not local_policy.override_global
    else:
        use_global = global_active

    selected = global_policy if use_global else local_policy
    return EffectivePolicy(source=selected, categories=tuple(selected.categories))
