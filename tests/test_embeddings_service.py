"""
EmbeddingsService state machine, caching and degradation.
"""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest
from cmdintent.core.errors import EmbeddingBatchMismatchError
from cmdintent.vector.cache import EmbeddingCache
from cmdintent.vector.embeddings import (
    EmbeddingsService,
    HeuristicEmbedding,
    IEmbeddingProvider,
    ServiceState,
    create_embeddings_service,
)


class FakeModel(IEmbeddingProvider):
    """Stands in for a loaded sentence-transformers model."""

    def __init__(self, dimension=4):
        self.dimension = dimension
        self.calls = []

    def embed_text(self, text):
        return self.embed_texts([text])[0]

    def embed_texts(self, texts):
        self.calls.append(list(texts))
        return [[1.0] + [0.0] * (self.dimension - 1) for _ in texts]

    def get_dimension(self):
        return self.dimension


class BrokenModel(FakeModel):
    def embed_texts(self, texts):
        raise RuntimeError("inference crashed")


@pytest.fixture
def cache(tmp_path):
    return EmbeddingCache("test-v1", tmp_path / "cache.json")


def make_service(cache, loader=None, enabled=True):
    return EmbeddingsService(
        enabled=enabled,
        model_name="test-model",
        model_version="test-v1",
        cache=cache,
        dimension=32,
        backend_loader=loader or (lambda: FakeModel()),
    )


def test_starts_uninitialized(cache):
    service = make_service(cache)

    assert service.state is ServiceState.UNINITIALIZED
    assert not service.is_using_fallback()
    assert service.get_status()["initialized"] is False


def test_disabled_service_is_fallback_from_construction(cache):
    loader = MagicMock()
    service = make_service(cache, loader=loader, enabled=False)

    assert service.state is ServiceState.READY_FALLBACK
    assert service.is_using_fallback()

    result = asyncio.run(service.embed("plan the next phase"))

    assert result.method == "heuristic"
    assert result.embedding == HeuristicEmbedding(32).embed_text("plan the next phase")
    loader.assert_not_called()


def test_successful_load_uses_model(cache):
    service = make_service(cache)

    result = asyncio.run(service.embed("plan the next phase"))

    assert service.state is ServiceState.READY_MODEL
    assert result.method == "model"
    assert result.from_cache is False
    assert result.embedding == [1.0, 0.0, 0.0, 0.0]


def test_loader_failure_degrades_to_fallback_permanently(cache):
    loader = MagicMock(side_effect=OSError("model download failed"))
    service = make_service(cache, loader=loader)

    async def run():
        first = await service.embed("plan the next phase")
        second = await service.embed("execute it")
        return first, second

    first, second = asyncio.run(run())

    assert service.state is ServiceState.READY_FALLBACK
    assert service.is_using_fallback()
    assert first.method == "heuristic"
    assert second.method == "heuristic"
    # No automatic retry
    assert loader.call_count == 1


def test_concurrent_init_loads_model_once(cache):
    calls = []
    lock = threading.Lock()

    def slow_loader():
        with lock:
            calls.append(1)
        time.sleep(0.05)
        return FakeModel()

    service = make_service(cache, loader=slow_loader)

    async def run():
        await asyncio.gather(service.init(), service.init(), service.embed("a"), service.embed("b"))

    asyncio.run(run())

    assert len(calls) == 1
    assert service.state is ServiceState.READY_MODEL


def test_init_is_idempotent(cache):
    loader = MagicMock(return_value=FakeModel())
    service = make_service(cache, loader=loader)

    async def run():
        await service.init()
        await service.init()

    asyncio.run(run())

    assert loader.call_count == 1


def test_inference_error_falls_back_for_that_call(cache):
    service = make_service(cache, loader=lambda: BrokenModel())

    result = asyncio.run(service.embed("plan the next phase"))

    assert result.method == "heuristic"
    assert service.state is ServiceState.READY_MODEL


def test_blank_text_is_zero_vector_with_model(cache):
    model = FakeModel()
    service = make_service(cache, loader=lambda: model)

    result = asyncio.run(service.embed("   "))

    assert result.embedding == [0.0, 0.0, 0.0, 0.0]
    assert model.calls == []


def test_owner_key_enables_caching(cache):
    model = FakeModel()
    service = make_service(cache, loader=lambda: model)

    async def run():
        first = await service.embed("Create a plan", owner_key="plan-phase")
        second = await service.embed("Create a plan", owner_key="plan-phase")
        return first, second

    first, second = asyncio.run(run())

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.embedding == first.embedding
    assert len(model.calls) == 1


def test_no_owner_key_never_caches(cache):
    model = FakeModel()
    service = make_service(cache, loader=lambda: model)

    async def run():
        await service.embed("query text")
        await service.embed("query text")

    asyncio.run(run())

    assert len(model.calls) == 2
    assert cache.get_stats()["entries"] == 0


def test_get_or_compute_uses_owner_cache(cache):
    service = make_service(cache)

    async def run():
        await service.get_or_compute("debug", "Systematic debugging")
        return await service.get_or_compute("debug", "Systematic debugging")

    assert asyncio.run(run()).from_cache is True


def test_batch_embeds_only_cache_misses(cache):
    model = FakeModel()
    service = make_service(cache, loader=lambda: model)

    async def run():
        await service.embed("Create a plan", owner_key="plan-phase")
        return await service.embed_batch(
            ["Create a plan", "Execute plans", "Show progress"],
            owner_keys=["plan-phase", "execute-phase", "progress"],
        )

    results = asyncio.run(run())

    assert [r.from_cache for r in results] == [True, False, False]
    assert model.calls[-1] == ["Execute plans", "Show progress"]
    assert len(model.calls) == 2


def test_batch_owner_key_mismatch_raises_before_any_caching(cache):
    loader = MagicMock(return_value=FakeModel())
    service = make_service(cache, loader=loader)

    with pytest.raises(EmbeddingBatchMismatchError) as excinfo:
        asyncio.run(service.embed_batch(["a", "b"], owner_keys=["only-one"]))

    assert isinstance(excinfo.value, ValueError)
    assert cache.get_stats()["entries"] == 0
    loader.assert_not_called()


def test_batch_without_owner_keys(cache):
    service = make_service(cache, enabled=False)

    results = asyncio.run(service.embed_batch(["plan", "execute"]))

    assert len(results) == 2
    assert all(r.method == "heuristic" for r in results)


def test_reload_model_retries_after_failure(cache):
    attempts = []

    def flaky_loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first load fails")
        return FakeModel()

    service = make_service(cache, loader=flaky_loader)

    async def run():
        await service.init()
        assert service.is_using_fallback()
        return await service.reload_model()

    assert asyncio.run(run()) is True
    assert service.state is ServiceState.READY_MODEL
    assert len(attempts) == 2


def test_reset_returns_to_uninitialized(cache):
    service = make_service(cache)
    asyncio.run(service.init())

    service.reset()

    assert service.state is ServiceState.UNINITIALIZED
    assert service.get_status()["initialized"] is False


def test_save_cache_persists_entries(cache, tmp_path):
    service = make_service(cache)

    async def run():
        await service.embed("Create a plan", owner_key="plan-phase")
        return await service.save_cache()

    assert asyncio.run(run()) is True
    assert (tmp_path / "cache.json").exists()


def test_init_loads_existing_cache(cache, tmp_path):
    cache.set("plan-phase", "Create a plan", [0.0, 1.0, 0.0, 0.0])
    cache.save()

    model = FakeModel()
    service = EmbeddingsService(
        enabled=True,
        model_version="test-v1",
        cache=EmbeddingCache("test-v1", tmp_path / "cache.json"),
        backend_loader=lambda: model,
    )

    result = asyncio.run(service.embed("Create a plan", owner_key="plan-phase"))

    assert result.from_cache is True
    assert result.embedding == [0.0, 1.0, 0.0, 0.0]
    assert model.calls == []


def test_get_status_reports_state(cache):
    service = make_service(cache, loader=MagicMock(side_effect=ImportError("no backend")))
    asyncio.run(service.init())

    status = service.get_status()

    assert status["initialized"] is True
    assert status["fallback_mode"] is True
    assert status["state"] == "ready_fallback"
    assert status["cache_stats"]["entries"] == 0


def test_create_embeddings_service_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("EMBED_ENABLED", "false")
    monkeypatch.setenv("EMBED_CACHE_PATH", str(tmp_path / "env-cache.json"))

    service = create_embeddings_service()

    assert service.is_using_fallback()
    assert service.cache.cache_path == tmp_path / "env-cache.json"


def test_heuristic_vectors_are_not_served_once_model_loads(cache):
    attempts = []

    def flaky_loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("offline")
        return FakeModel()

    service = make_service(cache, loader=flaky_loader)

    async def run():
        fallback = await service.embed("Create a plan", owner_key="plan-phase")
        await service.reload_model()
        recovered = await service.embed("Create a plan", owner_key="plan-phase")
        return fallback, recovered

    fallback, recovered = asyncio.run(run())

    assert fallback.method == "heuristic"
    assert recovered.method == "model"
    assert recovered.from_cache is False


def test_inference_fallback_results_are_not_cached(cache):
    service = make_service(cache, loader=lambda: BrokenModel())

    result = asyncio.run(service.embed("Create a plan", owner_key="plan-phase"))

    assert result.method == "heuristic"
    assert cache.get_stats()["entries"] == 0


def test_init_reports_load_progress(cache):
    updates = []
    service = make_service(cache)

    asyncio.run(service.init(updates.append))

    assert [u.status for u in updates] == ["loading", "ready"]
    assert updates[0].model_name == "test-model"


def test_failed_load_reports_fallback_with_error(cache):
    updates = []
    service = make_service(cache, loader=MagicMock(side_effect=OSError("download failed")))

    asyncio.run(service.init(updates.append))

    assert [u.status for u in updates] == ["loading", "fallback"]
    assert "download failed" in updates[-1].error


def test_disabled_service_reports_no_progress(cache):
    callback = MagicMock()
    service = make_service(cache, enabled=False)

    asyncio.run(service.init(callback))

    callback.assert_not_called()


def test_broken_progress_callback_does_not_stop_loading(cache):
    service = make_service(cache)

    asyncio.run(service.init(MagicMock(side_effect=RuntimeError("ui gone"))))

    assert service.state is ServiceState.READY_MODEL


def test_reload_model_reports_progress(cache):
    updates = []
    service = make_service(cache)
    asyncio.run(service.init())

    assert asyncio.run(service.reload_model(updates.append)) is True
    assert [u.status for u in updates] == ["loading", "ready"]
