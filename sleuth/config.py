"""
Sleuth Configuration Module

Centralized configuration management for Sleuth.
Loads from environment variables with sensible defaults.

Detector thresholds are not configurable here: they are module constants
in `sleuth.core.detectors` and change only together with their tests.
"""

import logging
import os

from sleuth.core.engine import AnalyzerConfig


class SleuthConfig:
    """Centralized Sleuth configuration."""

    # ========================================================================
    # Summary
    # ========================================================================

    @staticmethod
    def get_top_wallets() -> int:
        """Get number of top wallets listed in the summary."""
        return int(os.getenv("SLEUTH_TOP_WALLETS", "10"))

    @staticmethod
    def get_top_traders() -> int:
        """Get number of top traders listed in the summary."""
        return int(os.getenv("SLEUTH_TOP_TRADERS", "5"))

    # ========================================================================
    # Detection Engine
    # ========================================================================

    @staticmethod
    def get_parallel_detectors() -> bool:
        """Get whether detectors run on a thread pool."""
        return os.getenv("SLEUTH_PARALLEL_DETECTORS", "false").lower() == "true"

    @staticmethod
    def get_max_workers() -> int:
        """Get thread pool size for parallel detectors."""
        return int(os.getenv("SLEUTH_MAX_WORKERS", "4"))

    # ========================================================================
    # Observability
    # ========================================================================

    @staticmethod
    def get_metrics_enabled() -> bool:
        """Get whether the Prometheus metrics server is started."""
        return os.getenv("SLEUTH_METRICS_ENABLED", "false").lower() == "true"

    @staticmethod
    def get_metrics_port() -> int:
        """Get Prometheus metrics port."""
        return int(os.getenv("SLEUTH_METRICS_PORT", "8082"))

    @staticmethod
    def get_log_level() -> str:
        """Get log level name."""
        return os.getenv("SLEUTH_LOG_LEVEL", "INFO").upper()

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def build_analyzer_config() -> AnalyzerConfig:
        """Build an AnalyzerConfig from the environment."""
        return AnalyzerConfig(
            top_wallets=SleuthConfig.get_top_wallets(),
            top_traders=SleuthConfig.get_top_traders(),
            parallel_detectors=SleuthConfig.get_parallel_detectors(),
            max_workers=SleuthConfig.get_max_workers(),
        )

    @staticmethod
    def validate_config() -> tuple[bool, list[str]]:
        """
        Validate the current configuration.

        Returns:
            Tuple of (is_valid, list_of_warnings)
        """
        warnings = []
        is_valid = True

        for name, getter in (
            ("SLEUTH_TOP_WALLETS", SleuthConfig.get_top_wallets),
            ("SLEUTH_TOP_TRADERS", SleuthConfig.get_top_traders),
            ("SLEUTH_MAX_WORKERS", SleuthConfig.get_max_workers),
            ("SLEUTH_METRICS_PORT", SleuthConfig.get_metrics_port),
        ):
            try:
                value = getter()
            except ValueError:
                warnings.append(f"{name} is not an integer: {os.getenv(name)!r}")
                is_valid = False
                continue
            if value < 1:
                warnings.append(f"{name} must be at least 1, got {value}")
                is_valid = False

        if not isinstance(logging.getLevelName(SleuthConfig.get_log_level()), int):
            warnings.append(f"SLEUTH_LOG_LEVEL is not a log level: {SleuthConfig.get_log_level()}")
            is_valid = False

        if not SleuthConfig.get_parallel_detectors() and os.getenv("SLEUTH_MAX_WORKERS"):
            warnings.append("SLEUTH_MAX_WORKERS is set but SLEUTH_PARALLEL_DETECTORS is off")

        return is_valid, warnings

    @staticmethod
    def print_config_summary():
        """Print a summary of current configuration."""
        is_valid, warnings = SleuthConfig.validate_config()

        print("=" * 70)
        print("Sleuth Configuration Summary")
        print("=" * 70)
        if is_valid:
            print(f"Top Wallets: {SleuthConfig.get_top_wallets()}")
            print(f"Top Traders: {SleuthConfig.get_top_traders()}")
            print(f"Parallel Detectors: {SleuthConfig.get_parallel_detectors()}")
            print(f"Max Workers: {SleuthConfig.get_max_workers()}")
            print(f"Metrics Enabled: {SleuthConfig.get_metrics_enabled()}")
            print(f"Metrics Port: {SleuthConfig.get_metrics_port()}")
        print(f"Log Level: {SleuthConfig.get_log_level()}")
        print("=" * 70)

        if warnings:
            print("\nConfiguration Warnings:")
            for warning in warnings:
                print(f"  - {warning}")
        else:
            print("\nConfiguration looks good!")
