"""
Result Writer

Persists each search to the output folder as JSON or as a text report.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..common.schemas import (
    QueryEnhancement,
    ResultSummary,
    SearchResponse,
    render_search_report,
)

logger = logging.getLogger("weavesearch.retriever.output_writer")

SLUG_MAX_CHARS = 40


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    return slug[:SLUG_MAX_CHARS].rstrip("_") or "query"


class ResultWriter:
    """
    Writes search output files.

    File names are search_<slug>_<UTC timestamp>.<json|txt>; the folder is
    created on first write.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self._output_dir = Path(output_dir)

    @property
    def output_dir(self) -> Path:
        return self._output_dir.resolve()

    def save(
        self,
        query: str,
        response: SearchResponse,
        *,
        enhancement: Optional[QueryEnhancement] = None,
        summary: Optional[ResultSummary] = None,
        fmt: str = "json",
    ) -> Path:
        """
        Save one search.

        Args:
            query: Query as typed by the user
            response: Search outcome (successful or not)
            enhancement: Query rewrite, if the pipeline ran
            summary: LLM summary, if any
            fmt: "json" or "text"

        Returns:
            Path of the written file
        """
        now = datetime.now(timezone.utc)
        suffix = "txt" if fmt == "text" else "json"
        path = self._output_dir / f"search_{slugify(query)}_{now.strftime('%Y%m%d_%H%M%S_%f')}.{suffix}"

        self._output_dir.mkdir(parents=True, exist_ok=True)

        if suffix == "txt":
            text = render_search_report(
                response,
                timestamp=now.isoformat(),
                enhancement=enhancement,
                summary=summary,
            )
            path.write_text(text, encoding="utf-8")
        else:
            data = {
                "query": query,
                "timestamp": now.isoformat(),
                "response": response.model_dump(mode="json"),
            }
            if enhancement is not None:
                data["enhancement"] = enhancement.model_dump(mode="json")
            if summary is not None:
                data["summary"] = summary.model_dump(mode="json")

            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        logger.info("Saved search results to %s", path)
        return path
