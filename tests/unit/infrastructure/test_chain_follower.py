"""Tests for ChainFollower hop dispatch and failure isolation."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any
from unittest.mock import AsyncMock

import pytest

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.exceptions import FetchTimeoutError
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.composition import build_default_registry
from linkharvest.infrastructure.resolvers.chain import MAX_REDIRECT_HOPS, ChainFollower
from linkharvest.infrastructure.resolvers.hubcloud import HubCloudStrategy

_PAGE_URL = "https://hubcloud.one/drive/abc1"

_HOP_HTML = """\
<div class="card-header">Movie.2024.1080p.mkv</div>
<i id="size">2 GB</i>
<div class="card-body">
  <h2><a class="btn" href="https://fsl.fastdl.example/movie.mkv">Download [FSL Server]</a></h2>
  <h2><a class="btn" href="https://pub-a.workers.dev/?id=9">Download [10Gbps]</a></h2>
</div>
"""

Routes = Mapping[str, Any]


def _candidate(href: str, family: SourceFamily, **kwargs: Any) -> RawCandidate:
    return RawCandidate(display_text="btn", href=href, family=family, **kwargs)


@pytest.fixture()
def page(make_page: Callable[..., FetchedPage]) -> FetchedPage:
    return make_page(_PAGE_URL)


class TestRedirectLookup:
    @pytest.mark.asyncio
    async def test_reads_location_without_following(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://pub-a.workers.dev/?id=9"
        fetcher = routed_fetcher(
            {
                relay: make_page(
                    relay,
                    status_code=302,
                    headers={"Location": "https://gate.example/?link=https://cdn.example/m.mkv"},
                )
            }
        )
        follower = ChainFollower(fetcher)
        outcome = await follower.follow(
            HubCloudStrategy(), page, [_candidate(relay, SourceFamily.REDIRECT_PROXY)]
        )

        assert [c.href for c in outcome.candidates] == ["https://cdn.example/m.mkv"]
        fetcher.fetch.assert_awaited_once_with(
            relay, referer=_PAGE_URL, follow_redirects=False
        )

    @pytest.mark.asyncio
    async def test_missing_location_gives_empty_url(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://pub-a.workers.dev/?id=9"
        fetcher = routed_fetcher({relay: make_page(relay, "<html></html>")})
        outcome = await ChainFollower(fetcher).follow(
            HubCloudStrategy(), page, [_candidate(relay, SourceFamily.REDIRECT_PROXY)]
        )

        assert [c.href for c in outcome.candidates] == [""]
        assert outcome.failures == ()

    @pytest.mark.asyncio
    async def test_relative_location_joined(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://relay.example/go/1"
        fetcher = routed_fetcher(
            {relay: make_page(relay, status_code=301, headers={"Location": "/files/m.mkv"})}
        )
        outcome = await ChainFollower(fetcher).follow(
            HubCloudStrategy(), page, [_candidate(relay, SourceFamily.REDIRECT_PROXY)]
        )
        assert outcome.candidates[0].href == "https://relay.example/files/m.mkv"

    @pytest.mark.asyncio
    async def test_custom_header(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        buzz = "https://buzzheavier.com/abc/download"
        fetcher = routed_fetcher(
            {buzz: make_page(buzz, headers={"HX-Redirect": "https://dl.buzz.example/m.mkv"})}
        )
        candidate = _candidate(
            buzz, SourceFamily.REDIRECT_PROXY, redirect_header="hx-redirect"
        )
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, [candidate])
        assert outcome.candidates[0].href == "https://dl.buzz.example/m.mkv"

    @pytest.mark.asyncio
    async def test_walks_gateways_until_marker(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://pub-a.workers.dev/?id=9"
        gate = "https://gate.example/step2"
        fetcher = routed_fetcher(
            {
                relay: make_page(relay, status_code=302, headers={"Location": gate}),
                gate: make_page(
                    gate,
                    status_code=302,
                    headers={"Location": "https://gate.example/dl?link=https://cdn.example/Movie.1080p.mkv"},
                ),
            }
        )
        candidate = _candidate(relay, SourceFamily.REDIRECT_PROXY, redirect_until="link=")
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, [candidate])

        assert [c.href for c in outcome.candidates] == ["https://cdn.example/Movie.1080p.mkv"]
        assert fetcher.fetch.await_count == 2
        fetcher.fetch.assert_awaited_with(gate, referer=_PAGE_URL, follow_redirects=False)

    @pytest.mark.asyncio
    async def test_gateway_without_location_gives_empty_url(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://pub-a.workers.dev/?id=9"
        gate = "https://gate.example/step2"
        fetcher = routed_fetcher(
            {
                relay: make_page(relay, status_code=302, headers={"Location": gate}),
                gate: make_page(gate, "<html></html>"),
            }
        )
        candidate = _candidate(relay, SourceFamily.REDIRECT_PROXY, redirect_until="link=")
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, [candidate])

        assert [c.href for c in outcome.candidates] == [""]
        assert outcome.failures == ()

    @pytest.mark.asyncio
    async def test_gateway_loop_is_bounded(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        relay = "https://loop.example/a"
        fetcher = routed_fetcher(
            {relay: make_page(relay, status_code=302, headers={"Location": relay})}
        )
        candidate = _candidate(relay, SourceFamily.REDIRECT_PROXY, redirect_until="link=")
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, [candidate])

        assert [c.href for c in outcome.candidates] == [""]
        assert fetcher.fetch.await_count == MAX_REDIRECT_HOPS

    @pytest.mark.asyncio
    async def test_candidate_referer_sent_with_redirect(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        button = "https://buzzheavier.com/abc/"
        buzz = "https://buzzheavier.com/abc/download"
        fetcher = routed_fetcher(
            {buzz: make_page(buzz, headers={"HX-Redirect": "https://dl.buzz.example/m.mkv"})}
        )
        candidate = _candidate(
            buzz, SourceFamily.REDIRECT_PROXY, redirect_header="hx-redirect", referer=button
        )
        await ChainFollower(fetcher).follow(HubCloudStrategy(), page, [candidate])

        fetcher.fetch.assert_awaited_once_with(buzz, referer=button, follow_redirects=False)


class TestEmbedHop:
    @pytest.mark.asyncio
    async def test_second_pass_and_nested_redirect(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        hop = "https://gamerxyt.com/hubcloud.php?id=abc1"
        relay = "https://pub-a.workers.dev/?id=9"
        fetcher = routed_fetcher(
            {
                hop: make_page(hop, _HOP_HTML),
                relay: make_page(
                    relay,
                    status_code=302,
                    headers={"Location": "https://gate.example/dl?link=https://cdn.example/z.mkv"},
                ),
            }
        )
        outcome = await ChainFollower(fetcher).follow(
            HubCloudStrategy(), page, [_candidate(hop, SourceFamily.EMBED_PAGE)]
        )

        assert [c.href for c in outcome.candidates] == [
            "https://fsl.fastdl.example/movie.mkv",
            "https://cdn.example/z.mkv",
        ]
        assert outcome.candidates[0].details is not None
        assert outcome.candidates[0].details.file_size == "2 GB"

    @pytest.mark.asyncio
    async def test_nested_embeds_not_followed(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        hop = "https://gamerxyt.com/hubcloud.php?id=abc1"
        html = '<a class="btn" href="https://gamerxyt.com/hubcloud.php?id=2">Generate Direct Download Link</a>'
        fetcher = routed_fetcher({hop: make_page(hop, html)})
        outcome = await ChainFollower(fetcher).follow(
            HubCloudStrategy(), page, [_candidate(hop, SourceFamily.EMBED_PAGE)]
        )

        assert outcome.candidates == ()
        assert fetcher.fetch.await_count == 1


class TestGenericFallback:
    @pytest.mark.asyncio
    async def test_nested_registry_strategy(
        self,
        page: FetchedPage,
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        fetcher = routed_fetcher({})
        follower = ChainFollower(fetcher, registry=build_default_registry())
        outcome = await follower.follow(
            HubCloudStrategy(),
            page,
            [_candidate("https://pixeldrain.com/u/pd1", SourceFamily.GENERIC_FALLBACK)],
        )

        (candidate,) = outcome.candidates
        assert candidate.href == "https://pixeldrain.com/api/file/pd1?download"
        assert candidate.server == "Pixeldrain"
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_depth_limit_falls_back_to_generic(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        url = "https://pixeldrain.com/u/pd1"
        fetcher = routed_fetcher(
            {f"HEAD {url}": make_page(url, headers={"Content-Type": "video/mp4"})}
        )
        follower = ChainFollower(fetcher, registry=build_default_registry(), max_depth=0)
        outcome = await follower.follow(
            HubCloudStrategy(), page, [_candidate(url, SourceFamily.GENERIC_FALLBACK)]
        )

        assert [(c.href, c.family) for c in outcome.candidates] == [
            (url, SourceFamily.DIRECT_FILE_HOST)
        ]


class TestIsolationAndOrdering:
    @pytest.mark.asyncio
    async def test_one_failure_keeps_siblings(
        self,
        page: FetchedPage,
        make_page: Callable[..., FetchedPage],
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        bad = "https://relay.example/bad"
        good = "https://relay.example/good"
        fetcher = routed_fetcher(
            {
                bad: FetchTimeoutError(bad),
                good: make_page(good, status_code=302, headers={"Location": "https://cdn.example/g.mkv"}),
            }
        )
        candidates = [
            _candidate("https://fsl.example/a.mkv", SourceFamily.FAST_DOWNLOAD_PROXY),
            _candidate(bad, SourceFamily.REDIRECT_PROXY),
            _candidate(good, SourceFamily.REDIRECT_PROXY),
        ]
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, candidates)

        assert [c.href for c in outcome.candidates] == [
            "https://fsl.example/a.mkv",
            "https://cdn.example/g.mkv",
        ]
        (failure,) = outcome.failures
        assert failure.index == 1
        assert failure.href == bad
        assert failure.reason == "timeout"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(
        self,
        page: FetchedPage,
        routed_fetcher: Callable[[Routes], AsyncMock],
    ) -> None:
        boom = "https://relay.example/boom"
        fetcher = routed_fetcher({boom: RuntimeError("parser exploded")})
        outcome = await ChainFollower(fetcher).follow(
            HubCloudStrategy(), page, [_candidate(boom, SourceFamily.REDIRECT_PROXY)]
        )
        assert outcome.candidates == ()
        assert outcome.failures[0].reason == "RuntimeError"

    @pytest.mark.asyncio
    async def test_results_keep_page_order_when_hops_finish_out_of_order(
        self, page: FetchedPage, make_page: Callable[..., FetchedPage]
    ) -> None:
        delays = {"https://r.example/slow": 0.05, "https://r.example/fast": 0.0}

        async def _fetch(url: str, **kwargs: Any) -> FetchedPage:
            await asyncio.sleep(delays[url])
            return make_page(url, status_code=302, headers={"Location": url + ".mkv"})

        fetcher = AsyncMock()
        fetcher.fetch = AsyncMock(side_effect=_fetch)
        candidates = [
            _candidate("https://r.example/slow", SourceFamily.REDIRECT_PROXY),
            _candidate("https://r.example/fast", SourceFamily.REDIRECT_PROXY),
        ]
        outcome = await ChainFollower(fetcher, max_concurrent_hops=2).follow(
            HubCloudStrategy(), page, candidates
        )
        assert [c.href for c in outcome.candidates] == [
            "https://r.example/slow.mkv",
            "https://r.example/fast.mkv",
        ]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(
        self, page: FetchedPage, make_page: Callable[..., FetchedPage]
    ) -> None:
        in_flight = 0
        peak = 0

        async def _fetch(url: str, **kwargs: Any) -> FetchedPage:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return make_page(url, status_code=302, headers={"Location": url + "/f"})

        fetcher = AsyncMock()
        fetcher.fetch = AsyncMock(side_effect=_fetch)
        candidates = [
            _candidate(f"https://r.example/{i}", SourceFamily.REDIRECT_PROXY)
            for i in range(6)
        ]
        outcome = await ChainFollower(fetcher, max_concurrent_hops=2).follow(
            HubCloudStrategy(), page, candidates
        )
        assert len(outcome.candidates) == 6
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_final_families_need_no_hop(
        self, page: FetchedPage, routed_fetcher: Callable[[Routes], AsyncMock]
    ) -> None:
        fetcher = routed_fetcher({})
        candidates = [
            _candidate("https://a.example/1.mkv", SourceFamily.DIRECT_FILE_HOST),
            _candidate("https://a.example/2.mkv", SourceFamily.FAST_DOWNLOAD_PROXY),
            _candidate("https://a.example/3.m3u8", SourceFamily.ADAPTIVE_STREAM),
        ]
        outcome = await ChainFollower(fetcher).follow(HubCloudStrategy(), page, candidates)
        assert list(outcome.candidates) == candidates
        fetcher.fetch.assert_not_awaited()
