"""
Configuration management utilities.
"""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict
from functools import lru_cache


def load_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.
    
    Parameters
    ----------
    config_path : str or Path
        Path to the YAML configuration file.
        
    Returns
    -------
    dict
        Configuration dictionary (empty if the file is empty).
    """
    config_path = Path(config_path)
    
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a mapping: {config_path}")
    
    return config


@lru_cache(maxsize=8)
def _load_packaged_config(config_name: str) -> Dict[str, Any]:
    from qtlcoloc import CONFIG_DIR
    
    return load_config(CONFIG_DIR / f"{config_name}.yaml")


def get_config(config_name: str = "config") -> Dict[str, Any]:
    """
    Get a packaged configuration by name.
    
    The parsed file is cached; callers receive a private copy they may
    modify freely.
    
    Parameters
    ----------
    config_name : str
        Name of the configuration file (without .yaml extension).
        
    Returns
    -------
    dict
        Configuration dictionary.
    """
    return copy.deepcopy(_load_packaged_config(config_name))


def merge_config(
    defaults: Dict[str, Any],
    overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Recursively merge ``overrides`` on top of ``defaults``.
    
    Nested mappings are merged key by key; any other value in
    ``overrides`` replaces the default outright.
    """
    merged = copy.deepcopy(defaults)
    
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    
    return merged


def load_run_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load a run configuration layered over the packaged defaults.
    
    Parameters
    ----------
    config_path : str or Path
        User configuration file.
        
    Returns
    -------
    dict
        Validated configuration.
    """
    config = merge_config(get_config("config"), load_config(config_path))
    validate_config(config)
    return config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate a run configuration dictionary.
    
    Parameters
    ----------
    config : dict
        Configuration dictionary to validate.
        
    Returns
    -------
    bool
        True if valid, raises exception otherwise.
    """
    required_keys = ["coloc", "gwas", "eqtl", "regions"]
    
    for key in required_keys:
        if key not in config:
            raise ValueError(f"Missing required configuration key: {key}")
    
    gwas = config["gwas"]
    if "path" not in gwas and "study_accession" not in gwas:
        raise ValueError("gwas section needs either 'path' or 'study_accession'")
    
    valid_policies = ["own", "borrow"]
    policy = config["coloc"].get("maf_policy", "own")
    if policy not in valid_policies:
        raise ValueError(f"Invalid maf_policy: {policy}. Must be one of {valid_policies}")
    
    if not config["regions"]:
        raise ValueError("At least one region must be configured")
    
    for entry in config["regions"]:
        if not isinstance(entry, dict) or not entry.get("molecular_trait_ids"):
            raise ValueError(f"Region needs a mapping with 'molecular_trait_ids': {entry!r}")
    
    return True
