"""Test SponsorBlock policy construction and precedence"""

import pytest

from channel_downloader.channel.sponsorblock import (
    ALL_CATEGORIES, PolicyScope, SegmentSkipPolicy, resolve_policy
)
from channel_downloader.exceptions import ConfigurationError


def _global(active, force):
    return SegmentSkipPolicy(scope=PolicyScope.GLOBAL, skip_sponsor=active, force_globally=force)


def _local(active, override):
    return SegmentSkipPolicy(scope=PolicyScope.LOCAL, skip_intro=active, override_global=override)


class TestPolicy:
    """Test a single policy"""

    def test_categories_in_emission_order(self):
        policy = SegmentSkipPolicy(skip_music_off_topic=True, skip_sponsor=True, skip_outro=True)
        assert policy.categories == ['sponsor', 'outro', 'music_offtopic']
        assert policy.is_active

    def test_skip_all(self):
        policy = SegmentSkipPolicy(skip_all=True, skip_sponsor=True)
        assert policy.categories == [ALL_CATEGORIES]

    def test_disabled_policy_is_inactive(self):
        policy = SegmentSkipPolicy(enabled=False, skip_sponsor=True)
        assert not policy.is_active

    def test_no_categories_is_inactive(self):
        assert not SegmentSkipPolicy().is_active

    def test_from_config(self):
        policy = SegmentSkipPolicy.from_config(
            {'skipSponsor': True, 'skipSelfPromo': True, 'forceGlobally': True},
            PolicyScope.GLOBAL
        )

        assert policy.scope is PolicyScope.GLOBAL
        assert policy.force_globally
        assert policy.categories == ['sponsor', 'selfpromo']

    def test_from_config_none(self):
        assert SegmentSkipPolicy.from_config(None, PolicyScope.LOCAL) is None

    def test_from_config_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            SegmentSkipPolicy.from_config(['skipSponsor'], PolicyScope.LOCAL)

    def test_scope_restricted_flags(self):
        """forceGlobally is global-only, overrideGlobal is local-only"""
        with pytest.raises(ConfigurationError, match="forceGlobally"):
            SegmentSkipPolicy.from_config({'forceGlobally': True}, PolicyScope.LOCAL)
        with pytest.raises(ConfigurationError, match="overrideGlobal"):
            SegmentSkipPolicy.from_config({'overrideGlobal': True}, PolicyScope.GLOBAL)


class TestPrecedence:
    """Test the effective policy over every combination"""

    @pytest.mark.parametrize("global_active,force,local_active,override,expected", [
        (False, False, False, False, None),
        (False, False, False, True, None),
        (False, True, False, False, None),
        (False, True, False, True, None),
        (True, False, False, False, PolicyScope.GLOBAL),
        (True, False, False, True, PolicyScope.GLOBAL),
        (True, True, False, False, PolicyScope.GLOBAL),
        (True, True, False, True, PolicyScope.GLOBAL),
        (False, False, True, False, PolicyScope.LOCAL),
        (False, False, True, True, PolicyScope.LOCAL),
        (False, True, True, False, PolicyScope.LOCAL),
        (False, True, True, True, PolicyScope.LOCAL),
        (True, False, True, False, PolicyScope.LOCAL),
        (True, False, True, True, PolicyScope.LOCAL),
        (True, True, True, False, PolicyScope.GLOBAL),
        (True, True, True, True, PolicyScope.LOCAL),
    ])
    def test_combination(self, global_active, force, local_active, override, expected):
        effective = resolve_policy(_global(global_active, force), _local(local_active, override))

        assert effective.scope is expected
        if expected is None:
            assert not effective.is_active
            assert effective.categories == ()
        elif expected is PolicyScope.GLOBAL:
            assert effective.categories == ('sponsor',)
        else:
            assert effective.categories == ('intro',)

    def test_missing_policies(self):
        assert not resolve_policy(None, None).is_active
        assert resolve_policy(None, _local(True, False)).scope is PolicyScope.LOCAL
        assert resolve_policy(_global(True, True), None).scope is PolicyScope.GLOBAL

    def test_disabled_global_yields_to_local(self):
        disabled = SegmentSkipPolicy(scope=PolicyScope.GLOBAL, enabled=False, skip_all=True, force_globally=True)
        effective = resolve_policy(disabled, _local(True, False))

        assert effective.scope is PolicyScope.LOCAL
