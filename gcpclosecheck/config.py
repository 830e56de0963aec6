"""Service cleanup rules and package exception settings loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

EXCEPTION_TYPE_SHORT_LIVED = "short_lived"
EXCEPTION_TYPE_CLOUD_FUNCTION = "cloud_function"
EXCEPTION_TYPE_TEST = "test"

VALID_EXCEPTION_TYPES: tuple[str, ...] = (
    EXCEPTION_TYPE_SHORT_LIVED,
    EXCEPTION_TYPE_CLOUD_FUNCTION,
    EXCEPTION_TYPE_TEST,
)


class ConfigError(Exception):
    """Raised when a configuration cannot be loaded, parsed or validated."""


@dataclass
class CleanupMethod:
    """A method that releases a resource."""

    method: str
    required: bool = False
    description: str = ""


@dataclass
class ServiceRule:
    """Cleanup rules for one cloud service."""

    service_name: str
    package_path: str = ""
    creation_funcs: list[str] = field(default_factory=list)
    cleanup_methods: list[CleanupMethod] = field(default_factory=list)

    def has_creation_func(self, func_name: str) -> bool:
        """Whether ``func_name`` is one of the service's creation functions."""
        return func_name in self.creation_funcs

    def required_cleanup_methods(self) -> list[CleanupMethod]:
        """The cleanup methods marked as required, in declaration order."""
        return [method for method in self.cleanup_methods if method.required]


@dataclass
class ExceptionCondition:
    """When a package exception applies."""

    type: str = ""
    description: str = ""
    enabled: bool = False


@dataclass
class PackageExceptionRule:
    """A glob pattern of packages whose resource checks are relaxed."""

    name: str
    pattern: str = ""
    condition: ExceptionCondition = field(default_factory=ExceptionCondition)


@dataclass
class Config:
    """The whole tool configuration."""

    services: list[ServiceRule] = field(default_factory=list)
    package_exceptions: list[PackageExceptionRule] = field(default_factory=list)

    def validate(self) -> None:
        """Raise :class:`ConfigError` describing the first invalid entry."""
        if not self.services:
            raise ConfigError("services definition is empty")

        for i, service in enumerate(self.services):
            name = service.service_name
            if not name:
                raise ConfigError(f"service[{i}]: service name is empty")
            if not service.package_path:
                raise ConfigError(f"service[{i}]({name}): package path is empty")
            if not service.creation_funcs:
                raise ConfigError(f"service[{i}]({name}): creation functions are empty")
            if not service.cleanup_methods:
                raise ConfigError(f"service[{i}]({name}): cleanup methods are empty")
            for j, method in enumerate(service.cleanup_methods):
                if not method.method:
                    raise ConfigError(
                        f"service[{i}]({name}): cleanup method[{j}]: method name is empty"
                    )

        for i, exception in enumerate(self.package_exceptions):
            if not exception.name:
                raise ConfigError(f"package_exception[{i}]: exception name is empty")
            if not exception.pattern:
                raise ConfigError(
                    f"package_exception[{i}]({exception.name}): pattern is empty"
                )
            if exception.condition.type not in VALID_EXCEPTION_TYPES:
                raise ConfigError(
                    f"package_exception[{i}]({exception.name}): invalid condition type "
                    f"{exception.condition.type!r} (valid types: {list(VALID_EXCEPTION_TYPES)})"
                )

    def get_service(self, service_name: str) -> ServiceRule | None:
        """The first service with the given name, if any."""
        return next((s for s in self.services if s.service_name == service_name), None)

    def get_service_by_package_path(self, package_path: str) -> ServiceRule | None:
        """The first service with the given package path, if any."""
        return next((s for s in self.services if s.package_path == package_path), None)

    def has_service(self, service_name: str) -> bool:
        """Whether a service with the given name is configured."""
        return self.get_service(service_name) is not None

    def should_exempt_package(self, package_path: str) -> tuple[bool, str]:
        """Whether an enabled exception matches the package path, and why."""
        return self._match_exception(package_path)

    def should_exempt_file_path(self, file_path: str) -> tuple[bool, str]:
        """Whether an enabled exception matches the file path, and why."""
        return self._match_exception(file_path)

    def _match_exception(self, path: str) -> tuple[bool, str]:
        for exception in self.package_exceptions:
            if exception.condition.enabled and match_pattern(exception.pattern, path):
                return True, exception.condition.description
        return False, ""


def match_pattern(pattern: str, text: str) -> bool:
    """Match ``text`` against a simple glob with ``**/`` and ``*/`` parts."""
    if "**/" in pattern:
        return _match_double_star(pattern, text)
    if "*/" in pattern:
        return _match_single_star(pattern, text)
    return text == pattern


def _match_double_star(pattern: str, text: str) -> bool:
    parts = pattern.split("**/")
    if len(parts) != 2:
        return False
    before, after = parts
    if after.endswith("/**"):
        after = after[: -len("/**")]
    elif after.startswith("*/"):
        after = after[len("*/"):]

    has_prefix = before == "" or text.startswith(before)
    return has_prefix and _match_after(after, text)


def _match_after(after: str, text: str) -> bool:
    if after.startswith("*"):
        return text.endswith(after[1:])
    return after == "" or after in text


def _match_single_star(pattern: str, text: str) -> bool:
    parts = pattern.split("*/")
    if len(parts) != 2:
        return False
    before, after = parts
    if after.endswith("/*"):
        after = after[: -len("/*")]
    if before == "":
        return after in text
    return text.startswith(before) and after in text


def load_config(config_path: str | Path) -> Config:
    """Read and parse a YAML configuration file."""
    if not config_path:
        raise ConfigError("configuration file path is empty")
    try:
        data = Path(config_path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"failed to load configuration file: {exc}") from exc
    return parse_config(data)


def parse_config(data: str | bytes) -> Config:
    """Parse YAML text into a :class:`Config` without validating it."""
    try:
        document = yaml.safe_load(data)
        root = _mapping(document, "document")
        return Config(
            services=[_service(item) for item in _sequence(root.get("services"), "services")],
            package_exceptions=[
                _exception(item)
                for item in _sequence(root.get("package_exceptions"), "package_exceptions")
            ],
        )
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse YAML configuration: {exc}") from exc
    except _ShapeError as exc:
        raise ConfigError(f"failed to parse YAML configuration: {exc}") from exc


class _ShapeError(Exception):
    pass


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _ShapeError(f"{where} must be a mapping")
    return value


def _sequence(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _ShapeError(f"{where} must be a sequence")
    return value


def _text(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise _ShapeError(f"{where} must be a scalar")
    return str(value)


def _flag(value: Any, where: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise _ShapeError(f"{where} must be a boolean")
    return value


def _service(item: Any) -> ServiceRule:
    raw = _mapping(item, "service")
    return ServiceRule(
        service_name=_text(raw.get("service_name"), "service_name"),
        package_path=_text(raw.get("package_path"), "package_path"),
        creation_funcs=[
            _text(func, "creation_functions")
            for func in _sequence(raw.get("creation_functions"), "creation_functions")
        ],
        cleanup_methods=[
            _cleanup_method(method)
            for method in _sequence(raw.get("cleanup_methods"), "cleanup_methods")
        ],
    )


def _cleanup_method(item: Any) -> CleanupMethod:
    raw = _mapping(item, "cleanup method")
    return CleanupMethod(
        method=_text(raw.get("method"), "method"),
        required=_flag(raw.get("required"), "required"),
        description=_text(raw.get("description"), "description"),
    )


def _exception(item: Any) -> PackageExceptionRule:
    raw = _mapping(item, "package exception")
    condition = _mapping(raw.get("condition"), "condition")
    return PackageExceptionRule(
        name=_text(raw.get("name"), "name"),
        pattern=_text(raw.get("pattern"), "pattern"),
        condition=ExceptionCondition(
            type=_text(condition.get("type"), "type"),
            description=_text(condition.get("description"), "description"),
            enabled=_flag(condition.get("enabled"), "enabled"),
        ),
    )