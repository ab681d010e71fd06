from launcher_agent.outcomes import AutomationConfirmationRequired, ErrorOutcome, TextResponse, ToolExecuted


def _items_from_results(results):
    items = []
    for entry in results:
        result = entry.get("result")
        if isinstance(result, list):
            items.extend(item for item in result if isinstance(item, dict) and "path" in item)
    return items


def _errors_from_results(results):
    errors = []
    for entry in results:
        result = entry.get("result")
        if isinstance(result, dict) and result.get("success") is False:
            errors.append(result.get("error", "Unknown error"))
    return errors


def render_outcome(outcome):
    """Maps a terminal outcome to the single view the launcher shows for it."""
    if isinstance(outcome, TextResponse):
        return {"view": "text", "text": outcome.content}
    if isinstance(outcome, ToolExecuted):
        errors = _errors_from_results(outcome.results)
        if errors:
            return {"view": "error", "text": "Error: " + "; ".join(errors)}
        return {"view": "results", "items": _items_from_results(outcome.results)}
    if isinstance(outcome, AutomationConfirmationRequired):
        return {"view": "confirm", "script": outcome.script_content}
    if isinstance(outcome, ErrorOutcome):
        return {"view": "error", "text": f"Error: {outcome.message}"}
    raise TypeError(f"Not a terminal outcome: {outcome!r}")


def render_execution(result):
    if result.get("success"):
        text = (result.get("output") or "").strip() or "Script finished."
        if result.get("error_output"):
            text = f"{text}\n\nScript warnings:\n{result['error_output'].strip()}"
        return {"view": "text", "text": text}
    return {"view": "error", "text": f"Error: {result.get('error', 'Script failed.')}"}
