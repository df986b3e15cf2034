import pytest

from domain.models.schemas import SeverityTier
from domain.services.severity import classify, notification_severity, tier_message


class TestClassify:
    @pytest.mark.parametrize(
        "aqi, expected",
        [
            (None, SeverityTier.NORMAL),
            (0, SeverityTier.NORMAL),
            (100, SeverityTier.NORMAL),
            (101, SeverityTier.MODERATE),
            (150, SeverityTier.MODERATE),
            (151, SeverityTier.WARNING),
            (300, SeverityTier.WARNING),
            (301, SeverityTier.CRITICAL),
            (500, SeverityTier.CRITICAL),
        ],
    )
    def test_threshold_table(self, aqi, expected):
        assert classify(aqi) is expected

    def test_tiers_are_ordered(self):
        assert SeverityTier.NORMAL < SeverityTier.MODERATE < SeverityTier.WARNING < SeverityTier.CRITICAL
        assert SeverityTier.CRITICAL >= SeverityTier.WARNING

    def test_monotonic_over_range(self):
        tiers = [classify(aqi) for aqi in range(0, 501)]
        assert all(a <= b for a, b in zip(tiers, tiers[1:]))

    def test_tiers_serialize_as_strings(self):
        assert SeverityTier.WARNING.value == "warning"
        assert SeverityTier("critical") is SeverityTier.CRITICAL


class TestTierMessages:
    def test_unknown_aqi_has_its_own_message(self):
        assert "unavailable" in tier_message(classify(None), None)

    def test_each_tier_has_a_message(self):
        for tier in SeverityTier:
            assert tier_message(tier, 120)

    def test_normal_is_not_reported(self):
        assert notification_severity(SeverityTier.NORMAL) is None

    @pytest.mark.parametrize(
        "tier, severity",
        [
            (SeverityTier.MODERATE, "info"),
            (SeverityTier.WARNING, "warning"),
            (SeverityTier.CRITICAL, "critical"),
        ],
    )
    def test_reported_tiers_map_to_severity(self, tier, severity):
        assert notification_severity(tier) == severity
