"""Token-scoped widget generation.

A widget is a self-contained script, ``widget_<token_id>.js``, plus an HTML
preview shell, ``widget_<token_id>.html``, that inlines the very same script.
Both are produced from ``widget_assets/runtime.js`` with a bootstrap payload
substituted in; the runtime only walks the delivery plan computed here.
"""

import html
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from feedback_hub.core.config import settings
from feedback_hub.core.exceptions import StorageError
from feedback_hub.services.sequencer import build_delivery_plan

logger = logging.getLogger(__name__)

RUNTIME_PATH = Path(__file__).resolve().parent.parent / "widget_assets" / "runtime.js"
BOOTSTRAP_PLACEHOLDER = "__FEEDBACK_HUB_BOOTSTRAP__"


@dataclass(frozen=True)
class WidgetArtifacts:
    script_source: str
    preview_html_source: str


@lru_cache(maxsize=1)
def load_runtime() -> str:
    return RUNTIME_PATH.read_text(encoding="utf-8")


def _script_json(payload: dict) -> str:
    """JSON that is safe both as a JS expression and inside an inline <script>."""
    encoded = json.dumps(payload, ensure_ascii=False)
    return (
        encoded.replace("</", "<\\/")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def submit_url(api_base_url: str) -> str:
    return f"{api_base_url.rstrip('/')}{settings.API_V1_PREFIX}/responses/submit"


def generate_widget(
    token_id: str,
    survey_id: str,
    cards: list[dict],
    allowed_domains: list[str] | None,
    api_base_url: str,
    *,
    title: str = "",
) -> WidgetArtifacts:
    """Render the widget script and preview for one token. Pure."""
    bootstrap = {
        "tokenId": token_id,
        "surveyId": str(survey_id),
        "submitUrl": submit_url(api_base_url),
        "allowedDomains": list(allowed_domains) if allowed_domains else None,
        "cards": cards,
        "plan": build_delivery_plan(cards),
    }
    script = load_runtime().replace(BOOTSTRAP_PLACEHOLDER, _script_json(bootstrap))

    preview = (
        "<!DOCTYPE html>\n"
        '<html lang="cs">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"  <title>Náhled widgetu: {html.escape(title or token_id)}</title>\n"
        "</head>\n"
        "<body>\n"
        f"  <h1>{html.escape(title or 'Náhled dotazníku')}</h1>\n"
        f"  <p>Token: <code>{html.escape(token_id)}</code></p>\n"
        f"  <script>\n{script}\n  </script>\n"
        "</body>\n"
        "</html>\n"
    )
    return WidgetArtifacts(script_source=script, preview_html_source=preview)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def widget_dir() -> Path:
    return Path(settings.WIDGET_DIR)


def widget_path(token_id: str, extension: str = "js") -> Path:
    return widget_dir() / f"widget_{token_id}.{extension}"


def write_widget_files(token_id: str, artifacts: WidgetArtifacts) -> None:
    """Write both artifacts. Overwrites existing files."""
    try:
        widget_dir().mkdir(parents=True, exist_ok=True)
        widget_path(token_id, "js").write_text(artifacts.script_source, encoding="utf-8")
        widget_path(token_id, "html").write_text(artifacts.preview_html_source, encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write widget files for token %s: %s", token_id, exc)
        raise StorageError("Failed to write widget files") from exc
    logger.info("Widget written: token=%s dir=%s", token_id, widget_dir())


def remove_widget_files(token_id: str) -> None:
    for extension in ("js", "html"):
        path = widget_path(token_id, extension)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Widget file already missing: %s", path)
        except OSError as exc:
            logger.error("Failed to remove widget file %s: %s", path, exc)
            raise StorageError("Failed to remove widget files") from exc
    logger.info("Widget removed: token=%s", token_id)


def read_embedded_bootstrap(script_source: str) -> dict:
    """Extract the bootstrap payload from a generated script."""
    head, tail = load_runtime().split(BOOTSTRAP_PLACEHOLDER)
    if not (script_source.startswith(head) and script_source.endswith(tail)):
        raise ValueError("Not a generated widget script")
    return json.loads(script_source[len(head) : len(script_source) - len(tail)])
