"""
Search Report Templates

Renders a SearchResponse (plus optional enhancement and summary) to
Markdown-style text for the .txt output files and the console preview.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .search import QueryEnhancement, ResultSummary, SearchResponse, SearchResult


REPORT_TEMPLATE = """# Search Results: {query}
Searched: {timestamp}
Search Type: {search_type} | Results: {total} | Time: {processing_time}
{enhanced_line}
## Summary
{summary}

## Key Points
{key_points}

## Relevant Topics
{topics}

## Results
{results_block}
"""

RESULT_TEMPLATE = """### [{rank}] {title}
ID: {id} | Source: {source} ({source_type}) | Score: {score:.4f}
{url_line}
{content}
"""


def _format_list(items: list, empty: str = "- (none)") -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def _format_processing_time(ms: Optional[float]) -> str:
    if ms is None:
        return "n/a"
    return f"{ms:.0f} ms"


def render_result(result: "SearchResult", rank: int, max_content: Optional[int] = None) -> str:
    """Render one result block; content is cut to max_content characters if given"""
    content = result.content
    if max_content is not None and len(content) > max_content:
        content = content[:max_content].rstrip() + "..."

    return RESULT_TEMPLATE.format(
        rank=rank,
        title=result.title or "(untitled)",
        id=result.id,
        source=result.source,
        source_type=result.source_type,
        score=result.score,
        url_line=f"URL: {result.url}\n" if result.url else "",
        content=content,
    ).strip()


def render_search_report(
    response: "SearchResponse",
    timestamp: str,
    enhancement: Optional["QueryEnhancement"] = None,
    summary: Optional["ResultSummary"] = None,
) -> str:
    """
    Render a full search report.

    The report is self-contained: reading just this text gives the query,
    how it was rewritten, the summary and every result.
    """
    search_type = response.search_type.value if hasattr(response.search_type, "value") else str(response.search_type)

    enhanced_line = ""
    if enhancement is not None and enhancement.changed:
        enhanced_line = f"Enhanced Query: {enhancement.enhanced_query}\n"
        if enhancement.keywords:
            enhanced_line += f"Keywords: {', '.join(enhancement.keywords)}\n"

    if response.results:
        results_block = "\n\n".join(
            render_result(r, rank) for rank, r in enumerate(response.results, 1)
        )
    elif response.success:
        results_block = "(no results)"
    else:
        results_block = f"(search failed: {response.error})"

    text = REPORT_TEMPLATE.format(
        query=response.query,
        timestamp=timestamp,
        search_type=search_type,
        total=response.total_results,
        processing_time=_format_processing_time(response.processing_time),
        enhanced_line=enhanced_line,
        summary=summary.summary if summary else "(no summary)",
        key_points=_format_list(summary.key_points if summary else []),
        topics=_format_list(summary.relevant_topics if summary else []),
        results_block=results_block,
    )

    while "\n\n\n" in text:
        text = text.replace("\n\n\n", "\n\n")

    return text.strip() + "\n"
