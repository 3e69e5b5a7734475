"""
Model Catalog - Cached model discovery with a built-in fallback.

The catalog asks the generation service which models it offers and keeps
the answer for a configurable time-to-live. If discovery fails (or the
service reports nothing) the built-in model list is used instead, so
model pickers always have something to show.

A catalog is an explicit object: create one per service and pass it to
whoever needs it.
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Iterable

from creative_canvas.providers.base import ModelCard, ModelKind

logger = logging.getLogger(__name__)


ModelFetcher = Callable[[], Awaitable[list[ModelCard]]]


# ============================================================================
# Built-in Model Cards
# ============================================================================
# Used until discovery succeeds, and whenever it fails.

BUILTIN_MODELS: list[ModelCard] = [
    # Image models
    ModelCard(
        id="fal-ai/flux-pro/v1.1",
        name="FLUX.2 Pro",
        kind=ModelKind.IMAGE,
        provider="fal",
        description="High-fidelity image generation (4MP, commercial)",
        tier="flagship",
        cost="$0.050/image",
        capabilities=["TextToImage", "ImageToImage"],
    ),
    ModelCard(
        id="fal-ai/flux/dev",
        name="FLUX.2 Dev",
        kind=ModelKind.IMAGE,
        provider="fal",
        description="Experimental generation with LoRA support",
        tier="creative",
        cost="$0.025/image",
        capabilities=["TextToImage", "Lora"],
    ),
    ModelCard(
        id="fal-ai/nano-banana-pro",
        name="Nano Banana Pro",
        kind=ModelKind.IMAGE,
        provider="fal",
        description="Multi-reference generation (14 refs, 5-face memory)",
        tier="production",
        cost="$0.040/image",
        capabilities=["TextToImage", "MultiReference"],
    ),
    ModelCard(
        id="fal-ai/flux-kontext/pro",
        name="FLUX Kontext",
        kind=ModelKind.IMAGE,
        provider="fal",
        description="Context-aware editing and clothes swap",
        tier="production",
        cost="$0.040/image",
        capabilities=["ImageToImage", "Editing"],
    ),

    # Video models
    ModelCard(
        id="fal-ai/kling-video/v2.6/pro/text-to-video",
        name="Kling 2.6 T2V",
        kind=ModelKind.VIDEO,
        provider="fal",
        description="Text-to-video with native audio (1080p-4K)",
        tier="flagship",
        has_audio=True,
    ),
    ModelCard(
        id="fal-ai/kling-video/v2.6/pro/image-to-video",
        name="Kling 2.6 I2V",
        kind=ModelKind.VIDEO,
        provider="fal",
        description="Image-to-video animation",
        tier="production",
        has_audio=True,
    ),

    # LLM models
    ModelCard(
        id="gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        kind=ModelKind.LLM,
        description="Fast & efficient (Default)",
        tier="fast",
    ),
    ModelCard(
        id="gemini-2.5-pro",
        name="Gemini 2.5 Pro",
        kind=ModelKind.LLM,
        description="Advanced reasoning",
        tier="production",
    ),
    ModelCard(
        id="claude-sonnet-4",
        name="Claude Sonnet 4",
        kind=ModelKind.LLM,
        description="Best balance of intelligence and speed",
        tier="production",
    ),
    ModelCard(
        id="gpt-4o",
        name="GPT-4o",
        kind=ModelKind.LLM,
        description="OpenAI multimodal flagship",
        tier="flagship",
    ),

    # 3D models
    ModelCard(
        id="meshy",
        name="Meshy 6",
        kind=ModelKind.THREE_D,
        description="High-detail 3D models",
        tier="production",
    ),
    ModelCard(
        id="tripo",
        name="Tripo v2.5",
        kind=ModelKind.THREE_D,
        description="Fast game-ready 3D",
        tier="fast",
    ),
]


class ModelCatalog:
    """
    Time-limited cache of discovered models.

    A failed or empty discovery is cached as the fallback list for the
    same time-to-live, so a down service is not asked again on every call.

    Args:
        fetcher: Coroutine function returning the service's models,
            typically `service.list_models`. None means "built-ins only".
        ttl: Seconds a fetch result stays fresh
        fallback: Models used when discovery fails or returns nothing
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        fetcher: ModelFetcher | None = None,
        ttl: float = 300.0,
        fallback: Iterable[ModelCard] = BUILTIN_MODELS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self.ttl = ttl
        self._fallback = list(fallback)
        self._clock = clock

        self._models: list[ModelCard] = list(self._fallback)
        self._fetched_at: float | None = None
        self._using_fallback = True
        self.last_error: Exception | None = None

    @property
    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at >= self.ttl

    @property
    def using_fallback(self) -> bool:
        """True if the current model list is the built-in one."""
        return self._using_fallback

    async def models(self, kind: ModelKind | None = None) -> list[ModelCard]:
        """
        Get models, refetching if the cache has expired.

        Args:
            kind: Only return models of this kind
        """
        if self.is_stale:
            await self.refresh()
        models = self._models
        if kind is not None:
            models = [m for m in models if m.kind is kind]
        return list(models)

    async def refresh(self) -> list[ModelCard]:
        """Fetch models now, regardless of cache age."""
        if self._fetcher is None:
            self._store(self._fallback, fallback=True)
            return list(self._models)

        try:
            fetched = await self._fetcher()
        except Exception as e:
            logger.warning("Model discovery failed, using built-in models: %s", e)
            self.last_error = e
            self._store(self._fallback, fallback=True)
            return list(self._models)

        self.last_error = None
        if not fetched:
            logger.info("Service reported no models, using built-in models")
            self._store(self._fallback, fallback=True)
        else:
            logger.debug("Discovered %d model(s)", len(fetched))
            self._store(fetched, fallback=False)
        return list(self._models)

    def invalidate(self) -> None:
        """Forget the cached models; the next models() call refetches."""
        self._models = list(self._fallback)
        self._fetched_at = None
        self._using_fallback = True

    async def get(self, model_id: str) -> ModelCard | None:
        for model in await self.models():
            if model.id == model_id:
                return model
        return None

    async def is_known(self, model_id: str) -> bool:
        """Check if a model id is offered (or built in, when discovery is unavailable)."""
        return await self.get(model_id) is not None

    def _store(self, models: Iterable[ModelCard], fallback: bool) -> None:
        self._models = list(models)
        self._fetched_at = self._clock()
        self._using_fallback = fallback
