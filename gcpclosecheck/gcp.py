"""Knowledge of cloud client packages, resource types and usual variable names."""

from __future__ import annotations

GCP_PACKAGES: dict[str, str] = {
    "cloud.google.com/go/spanner": "spanner",
    "cloud.google.com/go/storage": "storage",
    "cloud.google.com/go/pubsub": "pubsub",
    "cloud.google.com/go/bigquery": "bigquery",
    "cloud.google.com/go/firestore": "firestore",
    "cloud.google.com/go/vision/apiv1": "vision",
    "cloud.google.com/go/iam/admin/apiv1": "admin",
    "cloud.google.com/go/recaptchaenterprise/apiv1": "recaptcha",
    "cloud.google.com/go/functions/apiv1": "functions",
}

_RESOURCE_TYPE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("*spanner.", "spanner"),
    ("*storage.", "storage"),
    ("*pubsub.", "pubsub"),
    ("*bigquery.", "bigquery"),
    ("*firestore.", "firestore"),
    ("*vision.", "vision"),
)

_TYPE_PACKAGE_HINTS: tuple[tuple[str, str], ...] = (
    ("spanner", "cloud.google.com/go/spanner"),
    ("storage", "cloud.google.com/go/storage"),
    ("pubsub", "cloud.google.com/go/pubsub"),
    ("vision", "cloud.google.com/go/vision"),
)

_VARIABLE_NAMES: dict[str, str] = {
    "NewClient": "client",
    "NewReader": "reader",
    "NewWriter": "writer",
    "ReadOnlyTransaction": "tx",
    "ReadWriteTransaction": "tx",
    "BatchReadOnlyTransaction": "tx",
    "Query": "iter",
    "NewImageAnnotatorClient": "client",
    "NewProductSearchClient": "client",
}


def package_service(package_path: str) -> str | None:
    """The service of an import path, matched exactly or by prefix."""
    if not package_path:
        return None
    service = GCP_PACKAGES.get(package_path)
    if service is not None:
        return service
    return next(
        (svc for path, svc in GCP_PACKAGES.items() if package_path.startswith(path)),
        None,
    )


def resource_type_service(type_name: str) -> str | None:
    """The service of a printed pointer type such as ``"*spanner.Client"``."""
    return next(
        (service for pattern, service in _RESOURCE_TYPE_PATTERNS if pattern in type_name),
        None,
    )


def package_path_from_type(type_name: str) -> str | None:
    """The import path guessed from the printed type of a method receiver."""
    return next(
        (path for hint, path in _TYPE_PACKAGE_HINTS if hint in type_name),
        None,
    )


def infer_variable_name(func_name: str) -> str | None:
    """The name usually given to what the creation function returns."""
    return _VARIABLE_NAMES.get(func_name)