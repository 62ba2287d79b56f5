"""Navigation index parsing, page fetching and bounded-parallel scraping of device pages."""

import logging
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

import requests
import yaml
from requests.adapters import HTTPAdapter, Retry

from .errors import FetchError, PyDXLTablesError
from .merge import DEFAULT_TABLE_INDICES, merge_tables
from .normalize import normalize_grid
from .types import Device, identity_from_url

logger = logging.getLogger(__name__)

DEFAULT_NAVIGATION_URL = (
    "https://raw.githubusercontent.com/ROBOTIS-GIT/emanual/master/_data/navigation.yml"
)
DEFAULT_BASE_URL = "https://emanual.robotis.com/docs/en"
DEFAULT_WORKERS = 20
DEFAULT_TIMEOUT = 30.0

Fetcher = Callable[[str], str]


@dataclass(frozen=True)
class DeviceSource:
    """A device page listed in the navigation index."""

    url: str
    display_name: str
    series_title: str

    @property
    def raw_name(self) -> str:
        return identity_from_url(self.url)[1]

    @property
    def series(self) -> str:
        return identity_from_url(self.url)[0]


@dataclass(frozen=True)
class ScrapeOutcome:
    """Result of one device pipeline run: a Device, or the error that aborted it."""

    source: DeviceSource
    device: Device | None = None
    error: Exception | None = None


def make_session(retries: int = 3) -> requests.Session:
    """requests session with retry/backoff on transient HTTP errors."""
    session = requests.Session()
    session.headers.update({"User-Agent": "pydxl-tables (+https://emanual.robotis.com)"})
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def fetch_text(url: str, session: requests.Session | None = None, timeout: float = DEFAULT_TIMEOUT) -> str:
    """GET a URL and return its text; any transport or HTTP error becomes FetchError."""
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(url, f"Failed to fetch {url!r}: {e}", cause=e) from e
    return resp.text


def parse_navigation(text: str, base_url: str = DEFAULT_BASE_URL) -> list[DeviceSource]:
    """
    List device pages from the e-Manual navigation YAML.

    Device entries are the children of every ``main[0].children`` item whose
    title contains "Series" (asterisks in titles are ignored).
    """
    try:
        navigation: Any = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Navigation index is not valid YAML: {e}") from e
    try:
        elements = navigation["main"][0]["children"]
    except (KeyError, IndexError, TypeError):
        raise ValueError("Navigation index has no main[0].children list") from None

    sources: list[DeviceSource] = []
    for element in elements or []:
        title = str(element.get("title", "")).replace("*", "")
        if "Series" not in title:
            continue
        for child in element.get("children") or []:
            url = child.get("url")
            if not url:
                continue
            sources.append(DeviceSource(
                url=base_url.rstrip("/") + url,
                display_name=str(child.get("title", "")).strip(),
                series_title=title.strip(),
            ))
    logger.debug("Navigation lists %d device pages", len(sources))
    return sources


def select_sources(
    sources: Iterable[DeviceSource],
    dxls: Iterable[str] | None = None,
    series: Iterable[str] | None = None,
) -> list[DeviceSource]:
    """
    Keep sources named in ``dxls`` (raw names) or belonging to ``series``.

    Series match the first word of the series title or the URL series segment,
    case-insensitively. With neither filter every source is kept.
    """
    wanted_dxls = {d.lower() for d in dxls or []}
    wanted_series = {s.lower() for s in series or []}
    if not wanted_dxls and not wanted_series:
        return list(sources)
    selected = []
    for src in sources:
        title_word = (src.series_title.split() or [""])[0].lower()
        if src.raw_name.lower() in wanted_dxls:
            selected.append(src)
        elif title_word in wanted_series or src.series.lower() in wanted_series:
            selected.append(src)
    return selected


def scrape_device(
    source: DeviceSource,
    fetch: Fetcher,
    table_indices: tuple[int, int] = DEFAULT_TABLE_INDICES,
) -> Device:
    """Fetch one page and run merge -> normalize on it."""
    text = fetch(source.url)
    grid = merge_tables(text, table_indices)
    result = normalize_grid(grid)
    logger.info("%s: %d records", source.display_name or source.raw_name, len(result.records))
    return Device.from_url(source.url, source.display_name, result.records)


def scrape_many(
    sources: list[DeviceSource],
    fetch: Fetcher,
    workers: int = DEFAULT_WORKERS,
    table_indices: tuple[int, int] = DEFAULT_TABLE_INDICES,
) -> Iterator[ScrapeOutcome]:
    """
    Scrape devices with at most ``workers`` pages in flight, yielding as each completes.

    A failing device yields an outcome carrying its error; other devices are
    unaffected. Whether to stop is the caller's decision.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    pool = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = {pool.submit(scrape_device, src, fetch, table_indices): src for src in sources}
        for future in as_completed(futures):
            src = futures[future]
            try:
                device = future.result()
            except PyDXLTablesError as e:
                logger.warning("%s: %s", src.url, e)
                yield ScrapeOutcome(source=src, error=e)
            except Exception as e:
                logger.exception("%s: unexpected error", src.url)
                yield ScrapeOutcome(source=src, error=e)
            else:
                yield ScrapeOutcome(source=src, device=device)
    finally:
        # Caller stopped early (fail-fast): drop pages not yet started
        pool.shutdown(wait=True, cancel_futures=True)
