"""Declared resources for the echo stack.

Used from the Pulumi program in ``infra/__main__.py``; kept importable so the
resource graph can be exercised with Pulumi mocks.
"""
from __future__ import annotations

from typing import Dict, Tuple

import pulumi
import pulumi_docker as docker

from .models import ContainerSettings


def settings_from_config(config: pulumi.Config) -> ContainerSettings:
    """Build container settings from stack config, keeping defaults for gaps."""
    values: Dict[str, object] = {}
    name = config.get("containerName")
    if name:
        values["name"] = name
    image = config.get("image")
    if image:
        values["image"] = image
    internal_port = config.get_int("internalPort")
    if internal_port is not None:
        values["internal_port"] = internal_port
    external_port = config.get_int("externalPort")
    if external_port is not None:
        values["external_port"] = external_port
    env = config.get_object("env")
    if env is not None:
        values["env"] = {str(key): str(value) for key, value in env.items()}
    command = config.get_object("command")
    if command is not None:
        values["command"] = [str(part) for part in command]
    return ContainerSettings.model_validate(values)


def declare_echo_container(
    settings: ContainerSettings,
) -> Tuple[docker.Container, Dict[str, pulumi.Output]]:
    """Declare the echo image + container and return the stack outputs."""
    image = docker.RemoteImage(
        f"{settings.name}-image",
        name=settings.image,
        keep_locally=True,
    )
    container = docker.Container(
        settings.name,
        image=image.image_id,
        name=settings.name,
        ports=[
            docker.ContainerPortArgs(
                internal=settings.internal_port,
                external=settings.external_port,
            )
        ],
        envs=settings.env_list(),
        command=settings.command or None,
    )
    outputs = {
        "containerName": container.name,
        "containerId": container.id,
        # Published only once the container exists.
        "containerPort": container.id.apply(lambda _: settings.external_port),
    }
    return container, outputs
