"""Content negotiation: accept markdown (with YAML frontmatter) or JSON."""

from __future__ import annotations

import json

import frontmatter
from fastapi import HTTPException, Request, Response
from pydantic import BaseModel


async def parse_body(request: Request, body_key: str = "text") -> dict:
    """Parse request body as JSON or markdown with YAML frontmatter.

    For markdown, the document body lands under ``body_key``.
    """
    content_type = request.headers.get("content-type", "")
    raw = await request.body()
    text = raw.decode("utf-8").strip()

    if not text:
        return {}

    if "application/json" in content_type:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Malformed JSON body") from None
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        return data

    # Try JSON first (some clients send JSON without content-type),
    # but only if it looks like JSON and content-type isn't explicitly markdown
    if text.startswith("{") and "text/markdown" not in content_type:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

    post = frontmatter.loads(text)
    result = dict(post.metadata)
    if post.content.strip():
        result[body_key] = post.content.strip()
    return result


def wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept


def render_response(
    request: Request,
    data: dict | BaseModel,
    status_code: int = 200,
    headers: dict | None = None,
) -> Response:
    """Return JSON or markdown based on Accept header."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    if wants_json(request):
        return Response(
            content=json.dumps(data, indent=2),
            status_code=status_code,
            media_type="application/json",
            headers=headers,
        )

    # Copy before mutating so callers' dicts are not affected
    data = dict(data)

    # Markdown: structured fields as YAML frontmatter, free text as body
    body_key = None
    for k in ("text", "description"):
        if isinstance(data.get(k), str):
            body_key = k
            break

    if body_key:
        body = data.pop(body_key)
        content = frontmatter.dumps(frontmatter.Post(body, **data)) if data else body
    else:
        content = frontmatter.dumps(frontmatter.Post("", **data))

    return Response(
        content=content,
        status_code=status_code,
        media_type="text/markdown",
        headers=headers,
    )
