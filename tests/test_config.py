#!/usr/bin/env python3
"""
Test Suite for Engagement Data Loading

Tests cover:
1. Loading the packaged engagement data
2. Loading from a custom path
3. Building typed configuration from a custom file
"""

import json

import pytest

from interceptor.config import DEFAULT_DATA_PATH, load_engagement_data
from interceptor.fuse import ProximityFuseConfig
from interceptor.guidance import GuidanceConfig
from interceptor.threat import ThreatAnalyzer, ThreatClass


@pytest.fixture
def engagement_data():
    return load_engagement_data()


class TestLoadEngagementData:
    """Tests for JSON engagement data loading."""

    def test_packaged_file_exists(self):
        assert DEFAULT_DATA_PATH.exists()

    def test_sections_present(self, engagement_data):
        for section in ("fuse_profiles", "guidance", "threat_assessment",
                        "threat_classes", "protected_assets"):
            assert section in engagement_data

    def test_every_threat_class_has_a_table_entry(self, engagement_data):
        assert set(engagement_data["threat_classes"]) == {c.value for c in ThreatClass}

    def test_load_from_custom_path(self, tmp_path):
        custom = {
            "fuse_profiles": {
                "initial": {
                    "arming_distance_m": 20.0,
                    "detonation_radius_m": 10.0,
                    "optimal_radius_m": 5.0
                }
            },
            "guidance": {"max_g": 30.0},
            "threat_assessment": {"max_interceptors": 2},
        }
        path = tmp_path / "engagement.json"
        path.write_text(json.dumps(custom))

        data = load_engagement_data(str(path))
        fuse = ProximityFuseConfig.from_engagement_data(data, "initial")
        guidance = GuidanceConfig.from_engagement_data(data)
        analyzer = ThreatAnalyzer.from_engagement_data(data)

        assert fuse.arming_distance_m == 20.0
        assert fuse.scan_interval_ms == 0.0
        assert guidance.max_g == 30.0
        assert guidance.gain == 2.0
        assert analyzer.max_interceptors == 2
        assert len(analyzer.protected_assets) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engagement_data(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_engagement_data(path)
