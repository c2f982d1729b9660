"""Search mode: flatten external finder matches into the tree."""

from __future__ import annotations

from arbor.fs.search import SearchRequest
from arbor.tree.context import TreeContext
from arbor.tree.items import create_item


def search_request(context: TreeContext, root_path: str) -> SearchRequest:
    state = context.state
    return SearchRequest(
        root_path=root_path,
        term=state.search_pattern or "",
        filters=state.filters,
        find_command=state.find_command,
        limit=state.search_limit,
    )


async def search(context: TreeContext, request: SearchRequest) -> None:
    logger = context.logger
    matches = 0
    async for result in context.searcher(request):
        if result.error or result.path is None:
            logger.warning("tree.search.error", path=result.path, error=result.error)
            continue
        try:
            # Reported types are not trusted; lstat decides.
            create_item(context, result.path)
        except OSError as exc:
            logger.warning("tree.item.failed", path=result.path, error=str(exc))
            continue
        matches += 1
    logger.debug("tree.search.done", term=request.term, matches=matches)
    context.complete()
