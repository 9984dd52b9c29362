"""Centralized constants for the echo deploy workflow.

Stack naming, container defaults and probe timings live here so the
models, the Pulumi program and the e2e suite agree on them.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Stack identity
# ---------------------------------------------------------------------------
DEFAULT_STACK_NAME = "test"
PROJECT_NAME = "echo-deploy"
CONFIG_FILENAME = "deploy.yaml"
INFRA_DIRNAME = "infra"

# Output the workflow cannot run without: the host port the echo server is
# published on.
REQUIRED_OUTPUT = "containerPort"

# ---------------------------------------------------------------------------
# Echo container defaults
# The internal port is what the server listens on INSIDE the container; the
# external port is the host mapping the prober talks to.
# ---------------------------------------------------------------------------
CONTAINER_NAME = "echo-container"
CONTAINER_IMAGE = "mendhak/http-https-echo:31"
INTERNAL_PORT = 80
EXTERNAL_PORT = 8080
CONTAINER_ENV: dict[str, str] = {
    "HTTP_PORT": str(INTERNAL_PORT),
    "ECHO_BACK_TO_CLIENT": "true",
}

# ---------------------------------------------------------------------------
# Probe timings (seconds)
# ---------------------------------------------------------------------------
SETTLE_DELAY = 2.0
RETRY_INTERVAL = 2.0
MAX_ATTEMPTS = 10
REQUEST_TIMEOUT = 5.0
USER_AGENT = "Pulumi-Test-Client"
EXPECTED_STATUS = 200

# Environment variable carrying the resolved port to subprocess verifiers.
PORT_ENV_VAR = "CONTAINER_PORT"
