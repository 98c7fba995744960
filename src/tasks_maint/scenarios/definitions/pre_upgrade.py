"""Checks run before upgrading."""

from __future__ import annotations

from tasks_maint.capabilities import Capability, CapabilitySnapshot
from tasks_maint.scenarios.base import Scenario, ScenarioMetadata
from tasks_maint.scenarios.procedures.checks import find_checks


class PreUpgradeCheckSatellite62z(Scenario):
    metadata = ScenarioMetadata(
        label="pre_upgrade_check_satellite_6_2_z",
        description="checks before upgrading to Satellite 6.2.z",
        tags=frozenset({"pre_upgrade_check", "satellite_6_2_z"}),
    )

    @classmethod
    def confine(cls, capabilities: CapabilitySnapshot) -> bool:
        version = capabilities.version(Capability.SATELLITE)
        return bool(version) and version.startswith("6.2.")

    def compose(self) -> None:
        self.add_steps(find_checks("basic"))
        self.add_steps(find_checks("pre_upgrade"))
