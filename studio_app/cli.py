"""
Pipeline CLI registration.

Attaches the ``legacy`` and ``audit`` command groups to ``app.cli`` and records
which groups are active in ``app.extensions``.
"""

from __future__ import annotations

from typing import Tuple

import click
from flask import Flask

from studio_app.audit.cli import audit_cli
from studio_app.migration.cli import legacy_cli

PIPELINES_EXTENSION_KEY = "studio_pipelines"
PIPELINE_GROUPS: Tuple[click.Group, ...] = (legacy_cli, audit_cli)


def _set_cli(app: Flask, group: click.Group) -> None:
    # Avoid duplicate registrations when the app module is imported repeatedly in tests
    if group.name in app.cli.commands:
        app.cli.commands.pop(group.name)
    app.cli.add_command(group)


def init_pipelines(app: Flask) -> None:
    for group in PIPELINE_GROUPS:
        _set_cli(app, group)
    app.extensions[PIPELINES_EXTENSION_KEY] = {"commands": tuple(group.name for group in PIPELINE_GROUPS)}
    app.logger.debug("Pipeline commands registered", extra={"commands": [group.name for group in PIPELINE_GROUPS]})
