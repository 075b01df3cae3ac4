"""FastAPI application serving the Torznab indexer endpoints."""

import secrets
from contextlib import asynccontextmanager

import msgspec
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel

from . import __version__, config, logger
from .core.search import QueryFacade
from .errors import FetchFailure
from .sources import registry
from .torznab.categories import CategoryClassifier
from .torznab.encoder import (
    DEFAULT_CAPABILITIES,
    NormalizedTorznabItem,
    build_channel_metadata,
    encode_caps,
    encode_error,
    encode_rss,
    generate_mock_item,
    to_torznab_items,
)

XML_MEDIA_TYPE = "application/xml"

INVALID_API_KEY_MESSAGE = (
    "Invalid or missing API key. Please check the server api_key setting "
    "and the indexer API Key configured in your client."
)


class TorznabError(Exception):
    """Error answered to the client as a Torznab ``<error>`` document."""

    def __init__(self, code: int, description: str) -> None:
        super().__init__(description)
        self.code = code
        self.description = description


class ReleaseResponse(BaseModel):
    """JSON representation of a parsed release."""

    title: str
    link: str
    resource_url: str
    pub_date: str
    guid: str
    episode: int | None = None
    size: int | None = None
    author: str | None = None
    category: str | None = None


class HealthResponse(BaseModel):
    status: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize feed sources on startup and release them on shutdown."""
    await registry.init_sources(config.cfg)
    try:
        yield
    finally:
        await registry.cleanup_sources()


app = FastAPI(
    title="anibridge",
    description="Torznab indexer for anime release RSS feeds",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(TorznabError)
async def torznab_error_handler(request: Request, exc: TorznabError) -> Response:
    return xml_response(encode_error(exc.code, exc.description), exc.code)


def xml_response(content: str, status_code: int = 200) -> Response:
    return Response(content=content, status_code=status_code, media_type=XML_MEDIA_TYPE)


def get_facades() -> dict[str, QueryFacade]:
    """Dependency returning the initialized source facades."""
    return registry.get_facades()


def verify_api_key(
    t: str | None = Query(None),
    apikey: str | None = Query(None),
    x_api_key: str | None = Header(None),
) -> bool:
    """Check the API key of an indexer request.

    Capabilities requests and servers without a configured key are not
    checked. The key is read from the ``apikey`` query parameter or the
    ``X-Api-Key`` header.

    Raises:
        TorznabError: If the key is missing or does not match.
    """
    expected = config.cfg.server.api_key
    if t == "caps" or not expected:
        return True

    provided = apikey or x_api_key
    if provided and secrets.compare_digest(provided.encode(), expected.encode()):
        return True

    logger.warning("Rejected indexer request with invalid or missing API key")
    raise TorznabError(401, INVALID_API_KEY_MESSAGE)


def get_base_url(request: Request) -> str:
    return (config.cfg.server.base_url or str(request.base_url)).rstrip("/")


def resolve_facade(source: str, facades: dict[str, QueryFacade]) -> QueryFacade:
    facade = facades.get(source)
    if facade is None:
        raise TorznabError(404, f"Unknown indexer source: {source}")
    return facade


class IndexerContext:
    """Per-request state shared by the indexer handlers."""

    def __init__(self, source: str, facade: QueryFacade, base_url: str) -> None:
        spec = registry.get_source_spec(source)
        self.source = source
        self.facade = facade
        self.base_url = base_url
        self.display_name = spec.display_name
        self.classifier = CategoryClassifier(slash_titles=spec.slash_series_titles)

    def rss(self, items: list[NormalizedTorznabItem]) -> Response:
        channel = build_channel_metadata(self.source, self.base_url)
        return xml_response(encode_rss(items, channel))

    def mock_rss(self) -> Response:
        mock_item = generate_mock_item(
            self.source, self.base_url, self.classifier, tag=self.display_name
        )
        return self.rss([mock_item])


async def handle_search(ctx: IndexerContext, q: str | None) -> Response:
    if not q:
        logger.info("Torznab search test request (no query), returning mock item")
        return ctx.mock_rss()

    logger.info("Torznab %s search request: q=%s", ctx.source, q)
    try:
        items = await ctx.facade.search_by_term(q)
    except Exception as e:
        logger.error("Error processing search request: %s", e)
        raise TorznabError(400, "Error processing search request") from e

    torznab_items = to_torznab_items(items, ctx.classifier, season=1)
    logger.info("Torznab search for %s found %d items", q, len(torznab_items))
    return ctx.rss(torznab_items)


async def handle_tvsearch(
    ctx: IndexerContext, q: str | None, season: str | None, ep: str | None
) -> Response:
    logger.debug(
        "Torznab tvsearch request: season=%s, ep=%s, q=%s", season, ep, q
    )

    if season and ep:
        try:
            season_num = int(season)
            episode_num = int(ep)
        except ValueError as e:
            raise TorznabError(400, "Invalid season or episode number") from e

        if not q:
            logger.info("Torznab tvsearch by episode without query, returning no items")
            return ctx.rss([])

        # Clients are configured for absolute numbering, so ep is the absolute episode
        try:
            items = await ctx.facade.search_by_episode(q, episode_num)
        except Exception as e:
            logger.error("Error processing tvsearch request: %s", e)
            raise TorznabError(400, "Error processing tvsearch request") from e

        torznab_items = to_torznab_items(
            items,
            ctx.classifier,
            season=season_num,
            episode=episode_num,
            absolute=episode_num,
        )
        logger.info(
            "Torznab tvsearch for %s S%dE%d found %d items",
            q,
            season_num,
            episode_num,
            len(torznab_items),
        )
        return ctx.rss(torznab_items)

    if q:
        return await handle_search(ctx, q)

    logger.info("Torznab tvsearch test request (no parameters), returning mock item")
    return ctx.mock_rss()


@app.get("/api/indexer/{source}")
async def indexer(
    source: str,
    request: Request,
    t: str | None = Query(None),
    q: str | None = Query(None),
    season: str | None = Query(None),
    ep: str | None = Query(None),
    _: bool = Depends(verify_api_key),
    facades: dict[str, QueryFacade] = Depends(get_facades),
) -> Response:
    """Torznab API endpoint.

    Args:
        source: Source name, e.g. ``dmhy`` or ``acgrip``.
        request: Incoming request, used for the public base URL.
        t: Request type: ``caps``, ``search`` or ``tvsearch``.
        q: Search term.
        season: Season number.
        ep: Episode number, treated as the absolute episode.
        facades: Source facades.

    Returns:
        Response: Torznab XML document.
    """
    facade = resolve_facade(source, facades)

    if t == "caps":
        logger.info("Torznab caps request for %s", source)
        return xml_response(encode_caps(DEFAULT_CAPABILITIES))

    ctx = IndexerContext(source, facade, get_base_url(request))
    if t == "search":
        return await handle_search(ctx, q)
    if t == "tvsearch":
        return await handle_tvsearch(ctx, q, season, ep)

    raise TorznabError(400, f"Unknown request type: {t or 'missing'}")


@app.get("/api/releases/{source}", response_model=list[ReleaseResponse])
async def releases(
    source: str,
    q: str | None = Query(None),
    ep: int | None = Query(None),
    _: bool = Depends(verify_api_key),
    facades: dict[str, QueryFacade] = Depends(get_facades),
) -> list[ReleaseResponse]:
    """List parsed releases for a term, optionally filtered by episode."""
    facade = resolve_facade(source, facades)
    try:
        if ep is not None:
            items = await facade.search_by_episode(q, ep)
        else:
            items = await facade.search_by_term(q)
    except FetchFailure as e:
        logger.error("Error listing %s releases: %s", source, e)
        raise HTTPException(status_code=502, detail=str(e)) from e
    return [ReleaseResponse(**msgspec.structs.asdict(item)) for item in items]


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok")
