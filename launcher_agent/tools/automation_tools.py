import logging
import subprocess

logger = logging.getLogger(__name__)

SCRIPT_INTERPRETER = ["osascript", "-e"]
SCRIPT_TIMEOUT_SECONDS = 30.0


def run_script(script_content: str, timeout: float = SCRIPT_TIMEOUT_SECONDS) -> dict:
    """
    Runs an automation script with the system script interpreter and reports the outcome.

    Only the confirmation gate calls this, after the user has approved the script.
    Text on stderr with a zero exit status is not a failure; it is returned as `error_output`.
    """
    logger.info(f"Running confirmed automation script:\n---\n{script_content}\n---")
    try:
        result = subprocess.run(
            [*SCRIPT_INTERPRETER, script_content],
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        logger.error(f"Script interpreter '{SCRIPT_INTERPRETER[0]}' not found.")
        return {"success": False, "error": f"Script interpreter '{SCRIPT_INTERPRETER[0]}' not found."}
    except subprocess.TimeoutExpired:
        logger.error(f"Automation script timed out after {timeout} seconds.")
        return {"success": False, "error": f"Script execution timed out after {timeout} seconds."}
    except OSError as e:
        logger.error(f"Failed to start automation script: {e}", exc_info=True)
        return {"success": False, "error": f"Failed to start script: {e}"}

    if result.returncode != 0:
        error = result.stderr.strip() or f"Script exited with status {result.returncode}."
        logger.error(f"Automation script failed with status {result.returncode}: {error}")
        return {"success": False, "error": error}

    if result.stderr.strip():
        logger.warning(f"Automation script wrote to stderr: {result.stderr.strip()}")
        return {"success": True, "output": result.stdout, "error_output": result.stderr}

    logger.info(f"Automation script finished. Output: {result.stdout.strip()}")
    return {"success": True, "output": result.stdout}
