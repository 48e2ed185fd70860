"""Self-contained debug error page.

Shown instead of the generic 500 page when ``AppConfig.debug`` is set.
Built from f-strings only, so a broken template environment (a missing
layout, a kida syntax error) can still be reported.

The page lists:
- Exception type, message and cause
- Traceback with source context, application frames highlighted
- Template location for kida errors
- The request line, query and (masked) headers
"""

import html
import linecache
import os
import sys
import types
from typing import Any

# Header values never echoed back, even in debug mode
_SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cookie",
    "set-cookie",
    "x-csrf-token",
    "proxy-authorization",
})

_CSS = """\
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: ui-monospace, Menlo, Consolas, monospace; background: #1a1b26;
       color: #a9b1d6; line-height: 1.6; padding: 2rem; font-size: 14px; }
.error-page { max-width: 960px; margin: 0 auto; }
h1 { color: #f7768e; font-size: 1.4rem; margin-bottom: 0.5rem; }
h2 { color: #7aa2f7; font-size: 1.1rem; margin: 1.5rem 0 0.5rem;
     border-bottom: 1px solid #2f3549; padding-bottom: 0.3rem; }
.exc-message { color: #e0af68; margin-bottom: 1rem; white-space: pre-wrap; word-break: break-word; }
.exc-chain { color: #565f89; font-size: 0.85rem; font-style: italic; }
.frame { margin: 0.5rem 0; border: 1px solid #2f3549; border-radius: 6px; overflow: hidden; }
.frame.app-frame { border-color: #7aa2f7; }
.frame-header { padding: 0.4rem 0.8rem; background: #24283b; font-size: 0.85rem;
                display: flex; justify-content: space-between; }
.frame-header .func { color: #bb9af7; }
.source-line { display: flex; padding: 0 0.8rem; font-size: 0.82rem; }
.source-line .lineno { color: #565f89; min-width: 3.5rem; text-align: right; padding-right: 1rem; }
.source-line .code { white-space: pre; }
.source-line.error-line { background: rgba(247, 118, 142, 0.15); }
.panel { background: #24283b; border-radius: 6px; padding: 0.8rem; margin: 0.5rem 0; }
.panel.template { border: 1px solid #e0af68; background: #1f2335; }
.line { display: flex; gap: 0.5rem; font-size: 0.85rem; }
.line .label { color: #7aa2f7; min-width: 140px; flex-shrink: 0; }
.line .val { word-break: break-all; }
"""


def _esc(text: object) -> str:
    return html.escape(str(text), quote=True)


def _is_app_frame(filename: str) -> bool:
    """True for frames outside the stdlib and site-packages."""
    if "site-packages" in filename or filename.startswith("<"):
        return False
    return not filename.startswith(os.path.dirname(os.__file__))


def _extract_frames(tb: types.TracebackType | None) -> list[dict[str, Any]]:
    frames: list[dict[str, Any]] = []
    while tb is not None:
        frame = tb.tb_frame
        lineno = tb.tb_lineno
        filename = frame.f_code.co_filename
        source: list[tuple[int, str]] = []
        for i in range(max(1, lineno - 4), lineno + 5):
            line = linecache.getline(filename, i, frame.f_globals)
            if line:
                source.append((i, line.rstrip()))
        frames.append({
            "filename": filename,
            "lineno": lineno,
            "func_name": frame.f_code.co_name,
            "source": source,
            "is_app": _is_app_frame(filename),
        })
        tb = tb.tb_next
    return frames


def _template_context(exc: BaseException | None) -> dict[str, Any] | None:
    """Location details from a kida exception, matched by module name."""
    if exc is None or "kida" not in (type(exc).__module__ or ""):
        return None
    return {
        "type": type(exc).__name__,
        "message": getattr(exc, "message", str(exc)),
        "template": (
            getattr(exc, "template_name", None)
            or getattr(exc, "filename", None)
            or getattr(exc, "template", None)
        ),
        "lineno": getattr(exc, "lineno", None),
        "suggestion": getattr(exc, "suggestion", None),
    }


def _line(label: str, value: object) -> str:
    return (
        f'<div class="line"><span class="label">{_esc(label)}</span>'
        f'<span class="val">{_esc(value)}</span></div>'
    )


def _render_frame(frame: dict[str, Any]) -> str:
    rows = "".join(
        f'<div class="source-line{" error-line" if n == frame["lineno"] else ""}">'
        f'<span class="lineno">{n}</span><span class="code">{_esc(code)}</span></div>'
        for n, code in frame["source"]
    )
    cls = "frame app-frame" if frame["is_app"] else "frame"
    return (
        f'<div class="{cls}"><div class="frame-header">'
        f'<span>{_esc(frame["filename"])}:{frame["lineno"]}</span>'
        f'<span class="func">{_esc(frame["func_name"])}</span></div>'
        f"<div>{rows}</div></div>"
    )


def _render_template_panel(ctx: dict[str, Any]) -> str:
    parts = [f'<div class="panel template"><h2>Template Error: {_esc(ctx["type"])}</h2>']
    parts.append(f'<div class="exc-message">{_esc(ctx["message"])}</div>')
    if ctx["template"] or ctx["lineno"]:
        location = str(ctx["template"] or "<template>")
        if ctx["lineno"]:
            location += f":{ctx['lineno']}"
        parts.append(_line("Template", location))
    if ctx["suggestion"]:
        parts.append(_line("Suggestion", ctx["suggestion"]))
    parts.append("</div>")
    return "".join(parts)


def _render_request_panel(request: Any) -> str:
    parts = ['<div class="panel">']
    parts.append(_line(
        "Request",
        f"{getattr(request, 'method', '?')} {getattr(request, 'path', '?')} "
        f"HTTP/{getattr(request, 'http_version', '?')}",
    ))
    client = getattr(request, "client", None)
    if client:
        parts.append(_line("Client", f"{client[0]}:{client[1]}"))
    query = getattr(request, "query", None)
    if query:
        parts.append(_line("Query", query.raw))
    headers = getattr(request, "headers", None)
    if headers:
        for name, value in headers.items():
            shown = "********" if name.lower() in _SENSITIVE_HEADERS else value
            parts.append(_line(name, shown))
    parts.append("</div>")
    return "".join(parts)


def render_debug_page(exc: BaseException, request: Any) -> str:
    """Render the full debug page for *exc* raised while serving *request*."""
    exc_type = type(exc).__name__
    module = type(exc).__module__ or ""
    qualified = f"{module}.{exc_type}" if module and module != "builtins" else exc_type
    message = str(exc)

    cause = exc.__cause__
    context = exc.__context__ if not exc.__suppress_context__ else None
    template_ctx = _template_context(exc) or _template_context(cause) or _template_context(context)

    sections = [f"<h1>{_esc(qualified)}</h1>", f'<div class="exc-message">{_esc(message)}</div>']
    if cause is not None:
        chain = f"Raised from {_esc(type(cause).__name__)}: {_esc(cause)}"
        sections.append(f'<div class="exc-chain">{chain}</div>')
    if template_ctx:
        sections.append(_render_template_panel(template_ctx))

    frames = _extract_frames(exc.__traceback__)
    if frames:
        sections.append("<h2>Traceback</h2>")
        sections.extend(_render_frame(f) for f in frames)

    sections.append("<h2>Request</h2>")
    sections.append(_render_request_panel(request))
    sections.append("<h2>Environment</h2>")
    sections.append(f'<div class="panel">{_line("Python", sys.version)}</div>')

    body = "\n".join(sections)
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{_esc(qualified)}: {_esc(message[:80])}</title>"
        f"<style>{_CSS}</style></head><body>"
        f'<div class="error-page">{body}</div>'
        "</body></html>"
    )
