"""
Web search backed by the Tavily API.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.tools import tool
from pydantic import BaseModel, Field

from car_analysis.config import TAVILY_API_KEY
from car_analysis.core.errors import ToolErrorKind, ToolResult
from car_analysis.tools.base import CarTool, ToolKind

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class WebSearchInput(BaseModel):
    q: str = Field(..., min_length=1, description="Search query")
    k: int = Field(default=3, ge=1, le=5, description="Number of results (1-5)")


class TavilyClient:
    def __init__(self, api_key: Optional[str] = TAVILY_API_KEY, timeout: float = 30):
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=16, max_keepalive_connections=8),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 3) -> Dict[str, Any]:
        """POST a search; transport and HTTP failures come back as ``{"error": ...}``."""
        if not self.enabled:
            return {"error": "missing_api_key"}
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {"query": query, "max_results": max_results}
        try:
            resp = await self.client.post(TAVILY_SEARCH_URL, json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            return {"error": "http_status", "status_code": e.response.status_code, "detail": e.response.text[:500]}
        except httpx.RequestError as e:
            return {"error": "request_failed", "detail": str(e)}
        except ValueError as e:
            return {"error": "invalid_response", "detail": str(e)}

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()


def _to_web_results(data: Dict[str, Any], limit: int) -> List[Dict[str, str]]:
    results = []
    for item in (data.get("results") or [])[:limit]:
        url = item.get("url")
        if not url:
            continue
        results.append({
            "title": item.get("title") or url,
            "url": url,
            "snippet": item.get("content") or "",
        })
    return results


@tool("web_search", args_schema=WebSearchInput)
def web_search(q: str, k: int = 3) -> Dict[str, Any]:
    """Search the web for up-to-date information (reviews, reliability reports, recalls, ownership costs)."""
    return {"q": q, "k": k}


class WebSearchTool(CarTool):
    kind = ToolKind.WEB_SEARCH
    input_model = WebSearchInput
    declaration = web_search

    def __init__(self, client: Optional[TavilyClient] = None):
        self.client = client or TavilyClient()

    async def execute(self, params: WebSearchInput) -> ToolResult:
        if not self.client.enabled:
            return ToolResult.failure(self.kind.value, ToolErrorKind.UNAVAILABLE, "TAVILY_API_KEY is not configured")

        logger.info(f"🔎 Web search (k={params.k}): {params.q[:80]}")
        data = await self.client.search(params.q, max_results=params.k)
        if "error" in data:
            logger.warning(f"⚠️ Web search failed: {data}")
            return ToolResult.failure(self.kind.value, ToolErrorKind.FAILED, f"search {data['error']}")

        results = _to_web_results(data, params.k)
        sources = [{"url": r["url"], "title": r["title"]} for r in results]
        return ToolResult.success({"results": results}, sources=sources)
