"""Shared kubectl execution helpers."""

import json
import logging
import shlex
import subprocess
from pathlib import Path
from typing import Any, cast

logger = logging.getLogger(__name__)


class KubectlError(RuntimeError):
    """Raised when kubectl command execution fails."""


def _run_kubectl(
    command: str,
    *,
    kubeconfig: Path | None = None,
) -> subprocess.CompletedProcess[str]:
    args = ["kubectl", *shlex.split(command)]
    if kubeconfig is not None:
        args.extend(["--kubeconfig", str(kubeconfig)])
    args.extend(["-o", "json"])
    logger.debug("running %s", shlex.join(args))
    try:
        return subprocess.run(
            args,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as exc:
        raise KubectlError("kubectl executable not found on PATH") from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else str(exc)
        raise KubectlError(f"kubectl command failed: {stderr}") from exc


def kubectl_json(
    command: str,
    *,
    kubeconfig: Path | None = None,
) -> dict[str, Any]:
    """Execute kubectl command and parse JSON output."""
    result = _run_kubectl(command, kubeconfig=kubeconfig)
    try:
        return cast(dict[str, Any], json.loads(result.stdout) if result.stdout else {})
    except json.JSONDecodeError as exc:
        raise KubectlError(f"kubectl returned invalid JSON: {exc}") from exc
