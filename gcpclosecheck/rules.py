"""Lookup of cleanup rules and package exceptions for cloud services."""

from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import Path

from .config import Config, ServiceRule, load_config


def extract_service_name(service_type: str) -> str:
    """The package part of a type name: ``"spanner.Client"`` gives ``"spanner"``."""
    return service_type.partition(".")[0]


class ServiceRuleEngine:
    """Answers which method releases a resource of a given service."""

    def __init__(self, config: Config | None = None) -> None:
        self._config: Config | None = None
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()
        if config is not None:
            self.use_config(config)

    @property
    def config(self) -> Config | None:
        """The configuration in use, if one has been loaded."""
        return self._config

    def load_rules(self, config_path: str | Path) -> None:
        """Load, validate and use the configuration file at ``config_path``.

        Raises :class:`~gcpclosecheck.config.ConfigError` and keeps the
        current configuration if the file cannot be loaded or is invalid.
        """
        self.use_config(load_config(config_path))

    def use_config(self, config: Config) -> None:
        """Validate ``config`` and make it the configuration in use."""
        config.validate()
        with self._lock:
            self._config = config
            self._cache.clear()

    def load_package_exceptions(self, config_path: str | Path) -> None:
        """Load a configuration for its package exceptions; same as :meth:`load_rules`."""
        self.load_rules(config_path)

    def cleanup_method(self, service_type: str) -> str | None:
        """The first required cleanup method for a type such as ``"spanner.Client"``."""
        with self._lock:
            cached = self._cache.get(service_type)
        if cached is not None:
            return cached

        method = self._find_cleanup_method(service_type)
        if method is not None:
            with self._lock:
                self._cache[service_type] = method
        return method

    def is_cleanup_required(self, service_type: str) -> bool:
        """Whether the service of the type has a required cleanup method."""
        return self.cleanup_method(service_type) is not None

    def service_rule(self, service_name: str) -> ServiceRule | None:
        """A copy of the rule for the named service, if configured."""
        if self._config is None:
            return None
        rule = self._config.get_service(service_name)
        if rule is None:
            return None
        return replace(
            rule,
            creation_funcs=list(rule.creation_funcs),
            cleanup_methods=[replace(method) for method in rule.cleanup_methods],
        )

    def should_exempt_package(self, package_path: str) -> tuple[bool, str]:
        """Whether the package is exempt from checks, and the reason."""
        if self._config is None:
            return False, ""
        return self._config.should_exempt_package(package_path)

    def _find_cleanup_method(self, service_type: str) -> str | None:
        if self._config is None:
            return None
        service = self._config.get_service(extract_service_name(service_type))
        if service is None:
            return None
        return next((m.method for m in service.cleanup_methods if m.required), None)