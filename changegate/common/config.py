"""Approval rule file loading.

Handles loading and validation of the YAML file that defines the approval
rule catalog.
"""

import os
from pathlib import Path
from typing import Any, Dict

import yaml

from changegate.core.errors import ConfigurationError
from changegate.core.rules.catalog import Operation, RoleRequirement, Rule, RuleCatalog


REQUIREMENT_KINDS = {
    "mandatory": RoleRequirement.required(),
    "optional": RoleRequirement.optional(),
}


def parse_rule(rule_dict: Dict[str, Any]) -> Rule:
    """Parse a single rule dictionary.

    Args:
        rule_dict: Rule configuration dictionary

    Returns:
        Rule instance

    Raises:
        ConfigurationError: If the rule is malformed
    """
    item_type = rule_dict.get("item_type")
    if not item_type:
        raise ConfigurationError(f"Rule is missing item_type: {rule_dict}")

    try:
        operation = Operation(str(rule_dict.get("operation", "")).upper())
    except ValueError:
        raise ConfigurationError(
            f"Invalid operation {rule_dict.get('operation')!r} for {item_type} rule"
        )

    roles = rule_dict.get("roles") or {}
    if not isinstance(roles, dict):
        raise ConfigurationError(f"roles for {item_type} rule must be a mapping")

    requirements = {}
    for role, kind in roles.items():
        requirement = REQUIREMENT_KINDS.get(str(kind).lower())
        if requirement is None:
            raise ConfigurationError(
                f"Invalid requirement {kind!r} for role {role} "
                f"(expected one of: {', '.join(REQUIREMENT_KINDS)})"
            )
        requirements[str(role)] = requirement

    condition = rule_dict.get("condition")
    return Rule(
        item_type=str(item_type),
        operation=operation,
        role_requirements=requirements,
        condition=str(condition) if condition is not None else None,
        priority=int(rule_dict.get("priority", 0)),
    )


def parse_rules_config(config_dict: Dict[str, Any]) -> RuleCatalog:
    """Parse the full rules configuration into a catalog.

    Args:
        config_dict: Configuration dictionary with a ``rules`` list

    Returns:
        RuleCatalog preserving declaration order
    """
    rules = config_dict.get("rules", [])
    if not isinstance(rules, list):
        raise ConfigurationError("'rules' must be a list")
    return RuleCatalog([parse_rule(rule_dict) for rule_dict in rules])


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_rule_catalog(config_path: str) -> RuleCatalog:
    """Load and parse a rules file into a catalog.

    Args:
        config_path: Path to the YAML rules file

    Returns:
        RuleCatalog instance
    """
    return parse_rules_config(load_config(config_path))
