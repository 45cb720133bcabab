"""HTTP combination and puzzle sources built on requests."""

import asyncio
from typing import Optional

import requests

from daily_alchemy.application.interfaces import ICombinationSource, ILoggingService, IPuzzleSource, SourceElement
from daily_alchemy.domain.errors import (
    CombinationRefused,
    InvalidArgument,
    PuzzleUnavailable,
    SourceError,
    SourceTransientError,
)
from daily_alchemy.domain.models import Puzzle
from daily_alchemy.domain.services import GameRules

COMBINE_PATH = "/api/daily-alchemy/combine"
PUZZLE_PATH = "/api/daily-alchemy/puzzle"


class _HttpClient:
    """Thin wrapper over a requests.Session shared by both sources."""

    def __init__(self, base_url: str, timeout: float, session: Optional[requests.Session] = None):
        if not base_url:
            raise InvalidArgument("API base URL is required for HTTP sources")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def post_json(self, path: str, payload: dict) -> requests.Response:
        return self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)

    def get_json(self, path: str, params: dict) -> requests.Response:
        return self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()


def _json_body(response: requests.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class HttpCombinationSource(ICombinationSource):
    """
    Combination source that asks the game API.

    Server errors, timeouts and connection failures are transient; 4xx answers and
    `success: false` bodies mean the pair cannot combine.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        logging_service: Optional[ILoggingService] = None,
    ):
        self.client = _HttpClient(base_url, timeout, session)
        self.logger = logging_service

    async def combine(self, name_a: str, name_b: str) -> SourceElement:
        return await asyncio.to_thread(self._combine_blocking, name_a, name_b)

    def _combine_blocking(self, name_a: str, name_b: str) -> SourceElement:
        try:
            response = self.client.post_json(COMBINE_PATH, {"elementA": name_a, "elementB": name_b})
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            raise SourceTransientError(f"Combine request failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise SourceTransientError(f"Combine request error: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise SourceTransientError(f"Combine API returned {response.status_code}")

        body = _json_body(response)
        if response.status_code >= 400 or not body.get("success"):
            message = body.get("error") or f"{name_a} + {name_b} has no product"
            raise CombinationRefused(message)

        result = body.get("result")
        if not isinstance(result, dict) or not result.get("element"):
            raise SourceError(f"Combine API returned an unexpected body: {body!r}")

        if self.logger:
            self.logger.debug(f"🌐 {name_a} + {name_b} → {result['element']}")
        return SourceElement(
            name=str(result["element"]),
            glyph=str(result.get("emoji") or result.get("glyph") or ""),
            is_global_first_discovery=bool(result.get("isFirstDiscovery", False)),
        )

    async def close(self) -> None:
        self.client.close()


class HttpPuzzleSource(IPuzzleSource):
    """Puzzle source that fetches `GET /api/daily-alchemy/puzzle?date=`."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        time_limit_seconds: Optional[int] = GameRules.TIME_LIMIT_SECONDS,
        default_hints: int = GameRules.DEFAULT_HINTS,
        logging_service: Optional[ILoggingService] = None,
    ):
        self.client = _HttpClient(base_url, timeout, session)
        self.time_limit_seconds = time_limit_seconds
        self.default_hints = default_hints
        self.logger = logging_service

    async def get_puzzle_for_date(self, iso_date: str) -> Puzzle:
        return await asyncio.to_thread(self._fetch_blocking, iso_date)

    def _fetch_blocking(self, iso_date: str) -> Puzzle:
        try:
            response = self.client.get_json(PUZZLE_PATH, {"date": iso_date})
        except requests.exceptions.RequestException as e:
            raise PuzzleUnavailable(f"Puzzle request for {iso_date} failed: {e}") from e

        body = _json_body(response)
        if response.status_code != 200 or not body.get("success"):
            message = body.get("error") or f"Puzzle API returned {response.status_code}"
            raise PuzzleUnavailable(message)

        data = body.get("puzzle")
        if not isinstance(data, dict):
            raise PuzzleUnavailable(f"Puzzle API returned no puzzle for {iso_date}")

        data = {"date": iso_date, **data}
        if data.get("timeLimitSeconds") is None and self.time_limit_seconds is not None:
            data["timeLimitSeconds"] = self.time_limit_seconds
        try:
            puzzle = Puzzle.from_dict(data, default_hints=self.default_hints)
        except InvalidArgument as e:
            raise PuzzleUnavailable(f"Puzzle data for {iso_date} is invalid: {e}") from e

        if self.logger:
            self.logger.debug(f"🌐 Fetched puzzle #{puzzle.number} ({puzzle.target})")
        return puzzle

    async def close(self) -> None:
        self.client.close()
