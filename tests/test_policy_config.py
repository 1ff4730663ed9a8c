from pathlib import Path

import pytest

from portal_sla.core.exceptions import ConfigurationException
from portal_sla.sla.domain import SLAPolicy
from portal_sla.sla.infrastructure import SLAPolicyManager


def test_nested_yaml_is_loaded(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text(
        "sla_monitoring:\n"
        "  warning_threshold_percent: 30\n"
        "  warning_threshold_hours: 2\n"
        "  notification_cooldown_hours: 6\n"
        "  breach_immediate_notify: false\n"
    )

    policy = SLAPolicyManager().load(path)

    assert policy.warning_threshold_percent == 30
    assert policy.warning_threshold_hours == 2
    assert policy.notification_cooldown_hours == 6
    assert policy.breach_immediate_notify is False
    assert policy.enabled is True


def test_flat_yaml_is_loaded(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text("enabled: false\n")

    assert SLAPolicyManager().load(path).enabled is False


def test_missing_file_uses_defaults(tmp_path):
    manager = SLAPolicyManager()

    assert manager.load(tmp_path / "absent.yaml") == SLAPolicy()
    assert manager.get_policy().warning_threshold_percent == 25


def test_invalid_file_raises_on_initial_load(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text("warning_threshold_percent: 250\n")

    with pytest.raises(ConfigurationException):
        SLAPolicyManager().load(path)


def test_failed_reload_keeps_previous_policy(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text("notification_cooldown_hours: 8\n")
    manager = SLAPolicyManager()
    manager.load(path)

    path.write_text("notification_cooldown_hours: [not, a, number]\n")
    assert manager.reload() is False
    assert manager.get_policy().notification_cooldown_hours == 8

    path.write_text("notification_cooldown_hours: 2\n")
    assert manager.reload() is True
    assert manager.get_policy().notification_cooldown_hours == 2


def test_get_policy_before_load():
    with pytest.raises(RuntimeError):
        SLAPolicyManager().get_policy()


def test_repository_root_config_matches_defaults():
    path = Path(__file__).resolve().parent.parent / "sla_config.yaml"
    assert SLAPolicyManager().load(path) == SLAPolicy()
