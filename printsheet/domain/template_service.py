# printsheet/domain/template_service.py
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Dict, List, Mapping, Optional
import base64, os, time
from PIL import Image
import asyncio
import aiohttp
import aiofiles
import psutil
from concurrent.futures import ThreadPoolExecutor

from printsheet.config.settings import settings
from printsheet.delivery.schemas.body import TemplateConfig
from printsheet.domain.adjustments import AdjustmentStore, back_key, front_key
from printsheet.domain.back_designs import BackDesignResolver
from printsheet.domain.layout import Layout, calculate_layout
from printsheet.domain.page_renderer import PageRenderer, RenderedPage
from printsheet.infrastructure.cv import colors, image_process
from printsheet.infrastructure.export import documents

# --- CONFIGURATION ---
REQUEST_TIMEOUT = settings.IMAGE_FETCH_TIMEOUT

# Pre-load progress bands (percent)
FRONTS_DONE = 60
BACKS_DONE = 90

# --- LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

ProgressCallback = Callable[[int, str], None]

def _noop_progress(percent: int, message: str) -> None:
    pass

def _memory_mb() -> Optional[float]:
    try:
        return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024
    except psutil.Error as mem_error:
        logger.warning(f"Could not get memory info: {mem_error}")
        return None

@dataclass
class RenderResult:
    config: TemplateConfig
    layout: Layout
    pages: List[RenderedPage]

    @cached_property
    def page_pngs(self) -> List[bytes]:
        # Encoded once, reused by every export of this result
        return [p.to_png() for p in self.pages]

    def summary(self) -> Dict:
        return self.layout.summary(len(self.config.items))

class TemplateService:
    def __init__(self, cpu_executor: ThreadPoolExecutor):
        self.cpu_executor = cpu_executor

    # --- image loading ---

    async def _load_image_bytes_async(self, src: str, session: aiohttp.ClientSession) -> Optional[bytes]:
        try:
            if src.startswith(("http://", "https://")):
                timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
                async with session.get(src, timeout=timeout) as response:
                    response.raise_for_status()
                    return await response.read()
            if os.path.isfile(src):
                async with aiofiles.open(src, "rb") as f:
                    return await f.read()
            if src.startswith("data:image"):
                _, encoded = src.split(",", 1)
                return base64.b64decode(encoded + "===")
            return base64.b64decode(src + "===")
        except Exception as e:
            logger.warning(f"Failed to load image from '{src[:70]}...': {type(e).__name__}")
            return None

    async def load_image(self, src: str, session: aiohttp.ClientSession) -> Optional[Image.Image]:
        data = await self._load_image_bytes_async(src, session)
        if data is None:
            return None
        try:
            return image_process.decode_image(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to decode image from '{src[:70]}...': {type(e).__name__}")
            return None

    async def preload_images(self, config: TemplateConfig, resolver: BackDesignResolver,
                             progress: ProgressCallback = _noop_progress) -> Dict[str, Image.Image]:
        """
        Load every front image and every series back image, one at a time.
        Sources that fail to load are absent from the result.
        """
        cache: Dict[str, Image.Image] = {}
        items = config.items
        series_names = config.unique_series()

        async with aiohttp.ClientSession() as session:
            progress(0, "Loading item images...")
            for i, item in enumerate(items, start=1):
                if item.image and item.image not in cache:
                    img = await self.load_image(item.image, session)
                    if img is not None:
                        cache[item.image] = img
                progress(round(i / len(items) * FRONTS_DONE), "Loading item images...")

            progress(FRONTS_DONE, "Loading back designs...")
            for i, series in enumerate(series_names, start=1):
                source = resolver.resolve(series)
                if source and source not in cache:
                    img = await self.load_image(source, session)
                    if img is not None:
                        cache[source] = img
                progress(FRONTS_DONE + round(i / len(series_names) * (BACKS_DONE - FRONTS_DONE)),
                         "Loading back designs...")

        progress(100, "Done!")
        logger.info(f"Preloaded {len(cache)} images for {len(items)} items and {len(series_names)} series.")
        return cache

    # --- layout / cover fit / colour ---

    def layout_for(self, config: TemplateConfig) -> Layout:
        width_mm, height_mm = config.footprint_mm
        return calculate_layout(config.page, config.margin, config.spacing, width_mm, height_mm)

    def resolver_for(self, config: TemplateConfig, custom_back_images: Optional[Mapping[str, str]] = None) -> BackDesignResolver:
        return BackDesignResolver(config.series_back_designs, config.is_circle, custom_back_images)

    async def apply_cover_fit(self, config: TemplateConfig, side: str,
                              custom_back_images: Optional[Mapping[str, str]] = None,
                              progress: ProgressCallback = _noop_progress) -> AdjustmentStore:
        """
        Set a cover-fit zoom on every front ("fronts") or every series back
        ("backs"). Faces whose image cannot be loaded keep their adjustment.
        """
        store = AdjustmentStore.from_wire(config.image_adjustments)
        if side == "fronts":
            targets = [(front_key(item), item.image) for item in config.items]
        else:
            resolver = self.resolver_for(config, custom_back_images)
            first_of_series = {}
            for item in config.items:
                first_of_series.setdefault(item.amiibo_series, item)
            targets = [(back_key(item), resolver.resolve(series)) for series, item in first_of_series.items()]

        async with aiohttp.ClientSession() as session:
            for i, (key, source) in enumerate(targets, start=1):
                img = await self.load_image(source, session) if source else None
                if img is None:
                    logger.warning(f"Cover fit skipped for {key}: image unavailable.")
                else:
                    store.apply_cover_fit(key, img.width, img.height, max_zoom=settings.COVER_FIT_MAX_ZOOM)
                progress(round(i / len(targets) * 100), f"Cover fit {i}/{len(targets)}")
        return store

    async def dominant_color(self, source: str) -> str:
        async with aiohttp.ClientSession() as session:
            img = await self.load_image(source, session)
        return colors.dominant_color(img)

    # --- rendering / export ---

    async def render(self, config: TemplateConfig, custom_back_images: Optional[Mapping[str, str]] = None,
                     progress: ProgressCallback = _noop_progress) -> RenderResult:
        # Snapshot: the render never sees later edits to the caller's config
        config = config.model_copy(deep=True)
        custom_back_images = dict(custom_back_images or {})
        run_id = f"{config.list_name}/{config.template_type}"
        logger.info(f"=== START RENDER {run_id}: {len(config.items)} items on {config.page_size} ===")
        start_time = time.perf_counter()
        memory_mb = _memory_mb()
        if memory_mb is not None:
            logger.info(f"Memory usage at start: {memory_mb:.1f}MB for {run_id}")

        # Stage 1: layout, fails before any image is fetched or canvas allocated
        layout = self.layout_for(config)
        logger.info(f"Stage 1/3: {layout.items_per_row}x{layout.rows_per_page} grid, "
                    f"{layout.pages_needed(len(config.items))} pages for {run_id}")

        # Stage 2: sequential image pre-load
        resolver = self.resolver_for(config, custom_back_images)
        images = await self.preload_images(config, resolver, progress)
        back_sources = resolver.resolve_all(config.unique_series())
        logger.info(f"Stage 2/3: images loaded for {run_id}")

        # Stage 3: raster work on the shared executor
        renderer = PageRenderer(config, images, back_sources, AdjustmentStore.from_wire(config.image_adjustments))
        loop = asyncio.get_running_loop()
        pages = await loop.run_in_executor(self.cpu_executor, renderer.render, progress)

        memory_mb = _memory_mb()
        if memory_mb is not None:
            logger.info(f"Memory after render: {memory_mb:.1f}MB for {run_id}")
        logger.info(f"=== COMPLETED RENDER {run_id}: {len(pages)} pages in "
                    f"{time.perf_counter() - start_time:.2f}s ===")
        return RenderResult(config=config, layout=layout, pages=pages)

    def _build_pdf(self, result: RenderResult) -> bytes:
        return documents.build_pdf(result.page_pngs, result.config.page)

    def _build_zip(self, result: RenderResult) -> bytes:
        return documents.build_zip(result.page_pngs, result.config.list_name, result.config.template_type)

    async def export_pdf(self, result: RenderResult) -> bytes:
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(self.cpu_executor, self._build_pdf, result)
        logger.info(f"PDF export: {len(result.pages)} pages, {len(content)} bytes")
        return content

    async def export_zip(self, result: RenderResult) -> bytes:
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(self.cpu_executor, self._build_zip, result)
        logger.info(f"ZIP export: {len(result.pages)} pages, {len(content)} bytes")
        return content
