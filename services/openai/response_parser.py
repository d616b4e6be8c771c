"""Helpers to parse Responses API outputs."""

from typing import Any, Dict, List, Optional

from models.agent_models import GroundingSource


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read an attribute from SDK objects or a key from plain dicts."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _output_text_parts(response: Any) -> List[Any]:
    parts = []
    for item in _field(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content", None) or []:
            if _field(content, "type") == "output_text":
                parts.append(content)
    return parts


def extract_text(response: Any) -> str:
    """Join all output_text entries of the response."""
    texts = [_field(part, "text", "") or "" for part in _output_text_parts(response)]
    if texts:
        return "".join(texts)
    return _field(response, "output_text", "") or ""


def extract_sources(response: Any) -> List[GroundingSource]:
    """Return the citations attached to output_text entries, de-duplicated by uri."""
    sources: List[GroundingSource] = []
    seen = set()
    for part in _output_text_parts(response):
        for annotation in _field(part, "annotations", None) or []:
            if _field(annotation, "type") == "url_citation":
                source = GroundingSource(
                    kind="web",
                    uri=_field(annotation, "url"),
                    title=_field(annotation, "title"),
                )
            else:
                source = GroundingSource(kind=None, uri=_field(annotation, "url"), title=_field(annotation, "title"))
            key = (source.kind, source.uri, source.title)
            if key in seen:
                continue
            seen.add(key)
            sources.append(source)
    return sources


def extract_image_b64(response: Any) -> Optional[str]:
    """Return the first base64 image payload of an Images API response."""
    for item in _field(response, "data", None) or []:
        b64 = _field(item, "b64_json")
        if b64:
            return b64
    return None


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = _field(response, "usage", None)
    return {
        "input_tokens": _field(usage, "input_tokens", None) if usage else None,
        "output_tokens": _field(usage, "output_tokens", None) if usage else None,
    }
