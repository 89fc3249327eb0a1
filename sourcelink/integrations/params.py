"""Merging and redaction of decrypted connection params."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sourcelink.integrations.base import SourceIntegration


def get_non_sensitive_params(integration: SourceIntegration) -> dict[str, Any]:
    """Return a copy of the driver's params safe to show to users.

    Every sensitive key holding a value is blanked to ``""``. The driver's own
    params are left untouched.
    """
    params = dict(integration.params)
    for key in integration.get_sensitive_param_keys():
        if params.get(key):
            params[key] = ""
    return params


def merge_params(integration: SourceIntegration, new_params: dict[str, Any]) -> dict[str, Any]:
    """Merge user-submitted params into the driver's params.

    A sensitive key submitted empty keeps its stored value, so a form that
    never echoes secrets back does not erase them. Every other key, including
    ones the driver has not seen before, overwrites.

    Returns:
        The merged params, also installed as ``integration.params``

    """
    sensitive_keys = set(integration.get_sensitive_param_keys())
    merged = dict(integration.params)
    for key, value in new_params.items():
        if key in sensitive_keys and not value:
            continue
        merged[key] = value

    integration.params = merged
    return merged
