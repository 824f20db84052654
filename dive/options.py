"""Application options for CI rules, JSON export and layer display."""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field

import yaml

from dive.rules import Rule, build_rules

logger = logging.getLogger(__name__)

DEFAULT_CI_CONFIG_PATH = ".dive-ci"

_YAML_NULL_TAG = "tag:yaml.org,2002:null"

# Keys of the legacy rule file mapped to CIRules fields.
_LEGACY_RULE_KEYS = {
    "lowestEfficiency": "lowest_efficiency",
    "highestWastedBytes": "highest_wasted_bytes",
    "highestUserWastedPercent": "highest_user_wasted_percent",
}


def truthy(value: str) -> bool:
    """Whether an environment value means true."""
    return value in ("true", "1", "yes")


def file_exists(path: str) -> bool:
    """Whether a path exists; only a missing path counts as absent."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


@dataclass
class CIRules:
    """CI rule thresholds, as configured, and the rules built from them."""

    lowest_efficiency: str = "0.9"
    highest_wasted_bytes: str = "disabled"
    highest_user_wasted_percent: str = "0.1"
    legacy_lowest_efficiency: str = ""
    legacy_highest_wasted_bytes: str = ""
    legacy_highest_user_wasted_percent: str = ""
    rules: list[Rule] = field(default_factory=list)

    def _has_legacy_options(self) -> bool:
        return bool(
            self.legacy_lowest_efficiency
            or self.legacy_highest_wasted_bytes
            or self.legacy_highest_user_wasted_percent
        )

    def post_load(self) -> None:
        """Apply legacy values and build the rule list."""
        self.rules = []
        if self._has_legacy_options():
            logger.warning(
                "please specify ci rules in snake-case "
                "(the legacy camelCase format is deprecated)"
            )
        if self.legacy_lowest_efficiency:
            self.lowest_efficiency = self.legacy_lowest_efficiency
        if self.legacy_highest_wasted_bytes:
            self.highest_wasted_bytes = self.legacy_highest_wasted_bytes
        if self.legacy_highest_user_wasted_percent:
            self.highest_user_wasted_percent = self.legacy_highest_user_wasted_percent

        self.rules = build_rules(
            self.lowest_efficiency,
            self.highest_wasted_bytes,
            self.highest_user_wasted_percent,
        )


def _load_rule_file(text: str, path: str) -> CIRules:
    """Read a CI rule file; unset values keep the defaults."""
    rules = CIRules()
    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to unmarshal CI config file {path}: {exc}") from None
    if root is None or root.tag == _YAML_NULL_TAG:
        return rules
    if not isinstance(root, yaml.MappingNode):
        raise ValueError(f"failed to unmarshal CI config file {path}: not a mapping")

    for key_node, value_node in root.value:
        if getattr(key_node, "value", None) != "rules":
            continue
        if isinstance(value_node, yaml.ScalarNode) and value_node.tag == _YAML_NULL_TAG:
            continue
        if not isinstance(value_node, yaml.MappingNode):
            raise ValueError(
                f"failed to unmarshal CI config file {path}: rules is not a mapping"
            )
        for rule_key, rule_value in value_node.value:
            attr = _LEGACY_RULE_KEYS.get(getattr(rule_key, "value", None))
            if attr is None:
                continue
            if not isinstance(rule_value, yaml.ScalarNode):
                raise ValueError(
                    f"failed to unmarshal CI config file {path}: "
                    f"{rule_key.value} must be a scalar"
                )
            if rule_value.tag == _YAML_NULL_TAG:
                continue
            setattr(rules, attr, rule_value.value)
    return rules


@dataclass
class CI:
    """CI mode settings."""

    enabled: bool = False
    config_path: str = DEFAULT_CI_CONFIG_PATH
    rules: CIRules = field(default_factory=CIRules)

    def post_load(self) -> None:
        """Honour the CI environment variable, load the rule file and build rules.

        When the rule file exists its values replace any configured rules,
        applied on top of the default rule values.
        """
        if not self.enabled and truthy(os.environ.get("CI", "")):
            self.enabled = True

        if self.config_path and file_exists(self.config_path):
            try:
                with open(self.config_path, encoding="utf-8") as handle:
                    text = handle.read()
            except OSError as exc:
                raise OSError(
                    f"failed to read CI config file {self.config_path}: {exc}"
                ) from exc
            self.rules = _load_rule_file(text, self.config_path)

        self.rules.post_load()


@dataclass
class ExportOptions:
    """Where to write the JSON analysis; empty disables the export."""

    json_path: str = ""

    def post_load(self) -> None:
        """Check that the export directory exists."""
        if not self.json_path:
            return
        directory = posixpath.dirname(self.json_path) or "."
        if not os.path.exists(directory):
            raise FileNotFoundError(
                f"directory for JSON export does not exist: {directory}"
            )


@dataclass
class UILayers:
    """Layer pane display settings."""

    show_aggregated_changes: bool = False