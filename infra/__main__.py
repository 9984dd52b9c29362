"""Pulumi program declaring the echo server container."""
import pulumi

from echo_deploy.resources import declare_echo_container, settings_from_config

settings = settings_from_config(pulumi.Config())
_, outputs = declare_echo_container(settings)

for key, value in outputs.items():
    pulumi.export(key, value)
