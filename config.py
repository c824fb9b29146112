#!/usr/bin/env python3
"""
Configuration Management for Kana Layout Optimization

This module provides structured configuration loading and validation
for the genetic layout search. It covers corpus file paths, the
genetic-algorithm parameters and display settings.

Features:
- YAML-based configuration with validation
- Operation probabilities checked to sum to 1
- Results folder created on load
- Clear error messages for configuration issues

"""

import yaml
import os
from typing import Optional
from dataclasses import dataclass, asdict


@dataclass
class PathConfig:
    """File paths for input and output."""
    conjunction_file: str
    results_folder: str = "output/layouts"
    frequency_file: Optional[str] = None


@dataclass
class OptimizationConfig:
    """Genetic search parameters."""
    population_size: int = 100
    generations: int = 1000
    seed: Optional[int] = None
    workers: int = 20

    # Operation probabilities (must sum to 1)
    cross_probability: float = 0.05
    mutation_probability: float = 0.01
    clone_probability: float = 0.94

    # Fraction of ranked members kept as the selection pool
    elitism: float = 0.3

    # Cap on every randomized retry loop
    max_attempts: int = 10000

    # Finger weight of the T/Y reach keys; None keeps the grid value
    reach_key_weight: Optional[int] = None


@dataclass
class VisualizationConfig:
    """Visualization and display settings."""
    print_keyboard: bool = True
    verbose_output: bool = False


@dataclass
class Config:
    """Complete configuration container."""
    paths: PathConfig
    optimization: OptimizationConfig
    visualization: VisualizationConfig

    # Internal tracking
    _config_path: str = "config.yaml"


def load_config(config_path: str = "config.yaml") -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML configuration: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    missing_sections = [section for section in ['paths'] if section not in raw_config]
    if missing_sections:
        raise ValueError(f"Missing required configuration sections: {missing_sections}")

    try:
        paths = PathConfig(**raw_config['paths'])
    except TypeError as e:
        raise ValueError(f"Error parsing paths configuration: {e}")

    try:
        optimization = OptimizationConfig(**(raw_config.get('optimization') or {}))
    except TypeError as e:
        raise ValueError(f"Error parsing optimization configuration: {e}")

    try:
        visualization = VisualizationConfig(**(raw_config.get('visualization') or {}))
    except TypeError as e:
        raise ValueError(f"Error parsing visualization configuration: {e}")

    config = Config(paths, optimization, visualization, config_path)
    validate_config(config)

    os.makedirs(config.paths.results_folder, exist_ok=True)

    return config


def validate_config(config: Config) -> None:
    """
    Check value ranges of a configuration.

    Args:
        config: Configuration object to validate

    Raises:
        ValueError: If any validation check fails
    """
    paths = config.paths
    opt = config.optimization

    if not paths.conjunction_file:
        raise ValueError("conjunction_file cannot be empty")
    if not paths.results_folder:
        raise ValueError("results_folder cannot be empty")

    if opt.population_size < 2:
        raise ValueError(f"population_size must be at least 2, got {opt.population_size}")
    if opt.generations < 1:
        raise ValueError(f"generations must be positive, got {opt.generations}")
    if opt.workers < 1:
        raise ValueError(f"workers must be positive, got {opt.workers}")
    if opt.max_attempts < 1:
        raise ValueError(f"max_attempts must be positive, got {opt.max_attempts}")
    if opt.seed is not None and not isinstance(opt.seed, int):
        raise ValueError(f"seed must be an integer, got {opt.seed!r}")
    if opt.reach_key_weight is not None and (
            not isinstance(opt.reach_key_weight, int) or opt.reach_key_weight < 0):
        raise ValueError(f"reach_key_weight must be a non-negative integer, got {opt.reach_key_weight!r}")

    probabilities = {
        'cross_probability': opt.cross_probability,
        'mutation_probability': opt.mutation_probability,
        'clone_probability': opt.clone_probability,
    }
    for name, value in probabilities.items():
        if not 0 <= value <= 1:
            raise ValueError(f"{name} must be in [0, 1], got {value}")
    total = sum(probabilities.values())
    if abs(total - 1.0) > 1e-6:
        raise ValueError(
            f"Operation probabilities must sum to 1 "
            f"(cross {opt.cross_probability} + mutation {opt.mutation_probability} "
            f"+ clone {opt.clone_probability} = {total:.6f})"
        )

    if not 0 < opt.elitism <= 1:
        raise ValueError(f"elitism must be in (0, 1], got {opt.elitism}")


def validate_files_exist(config: Config) -> None:
    """Raise FileNotFoundError for missing corpus files."""
    if not os.path.exists(config.paths.conjunction_file):
        raise FileNotFoundError(f"Conjunction file not found: {config.paths.conjunction_file}")
    if config.paths.frequency_file and not os.path.exists(config.paths.frequency_file):
        raise FileNotFoundError(f"Frequency file not found: {config.paths.frequency_file}")


def print_config_summary(config: Config) -> None:
    """Print human-readable configuration summary."""
    opt = config.optimization

    print(f"\nConfiguration Summary:")
    print(f"  Config file: {config._config_path}")
    print(f"  Conjunctions: {config.paths.conjunction_file}")
    print(f"  Frequencies: {config.paths.frequency_file or '(uniform weights)'}")
    print(f"  Results folder: {config.paths.results_folder}")
    print(f"  Population: {opt.population_size}, generations: {opt.generations}, "
          f"workers: {opt.workers}, seed: {opt.seed}")
    print(f"  Operations: cross={opt.cross_probability}, mutate={opt.mutation_probability}, "
          f"clone={opt.clone_probability}, elitism={opt.elitism}")
    if opt.reach_key_weight is not None:
        print(f"  Reach key weight: {opt.reach_key_weight}")
    print(f"  Visualization: keyboard={config.visualization.print_keyboard}, "
          f"verbose={config.visualization.verbose_output}")


def create_default_config(output_path: str = "config.yaml") -> None:
    """
    Create a default configuration file with common settings.

    Args:
        output_path: Path where to save the default config
    """
    default_config = {
        'paths': asdict(PathConfig(conjunction_file='input/conjunctions.tsv',
                                   frequency_file='input/frequencies.tsv')),
        'optimization': asdict(OptimizationConfig()),
        'visualization': asdict(VisualizationConfig()),
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(default_config, f, default_flow_style=False, indent=2, sort_keys=False)

    print(f"Default configuration saved to: {output_path}")


if __name__ == "__main__":
    print("Configuration Management for Kana Layout Optimization")

    try:
        if not os.path.exists("config.yaml"):
            print("Creating default configuration...")
            create_default_config()

        print("Loading configuration...")
        config = load_config()
        print_config_summary(config)

        print(f"\nValidating corpus files...")
        validate_files_exist(config)

        print(f"\nConfiguration validation successful!")

    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}")
        print(f"\nTo create a default configuration, run:")
        print(f"python config.py")
