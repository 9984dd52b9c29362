"""Entry point: deploy the echo stack and verify it, exiting 0 or 1."""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import ROOT_DIR, load_config
from .converge.runner import DeployRunner
from .errors import EngineError
from .runtime.engine import ProvisioningEngine, PulumiEngine
from .verify.strategies import Verifier, build_verifier

log = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run(
    config_path: Optional[Path] = None,
    engine: Optional[ProvisioningEngine] = None,
    verifier: Optional[Verifier] = None,
) -> int:
    """Run the deploy-and-verify workflow and map the outcome to an exit code."""
    try:
        config = load_config(config_path)
        if engine is None:
            engine = PulumiEngine()
        if verifier is None:
            verifier = build_verifier(config.verifier, config.probe, cwd=ROOT_DIR)
        log.info("Starting deployment of stack %s", config.stack_name)
        result = asyncio.run(DeployRunner(config=config, engine=engine, verifier=verifier).run())
    except Exception as exc:
        log.error("ERROR during deployment or testing: %s", exc, exc_info=True)
        if isinstance(exc, EngineError) and exc.stderr:
            log.error("Pulumi stderr:\n%s", exc.stderr)
        return 1

    if not result.ok:
        log.error("Deployment succeeded but verification failed")
        return 1
    log.info("Deployment and testing completed successfully")
    return 0


def main() -> int:
    configure_logging()
    return run()


if __name__ == "__main__":
    sys.exit(main())
