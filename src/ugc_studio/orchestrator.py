"""
Studio orchestrator.
Coordinates the pipeline for a batch of user images:
enhance -> detect labels -> caption -> (on demand) short video.
Each item fails on its own; the rest of the batch keeps going.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .captions.detection import CaptionWriter, LabelDetector, TemplateCaptionWriter, detect_labels
from .config import StudioSettings
from .domain.models import EncodedVideo, EnhancedAsset, EnhancementParams, Style
from .errors import StudioError
from .imaging.enhancer import Source, enhance_batch
from .video.synthesizer import VideoSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class StudioItem:
    """Everything produced for one submitted image."""
    name: str
    asset: Optional[EnhancedAsset] = None
    labels: list[str] = field(default_factory=list)
    caption: str = ""
    error: Optional[StudioError] = None
    video: Optional[EncodedVideo] = None
    video_error: Optional[StudioError] = None

    @property
    def ok(self) -> bool:
        return self.asset is not None


class StudioOrchestrator:
    """
    Glue between the two pipeline stages and the caption collaborators.
    Detection and captioning are injected, so no model is required.
    """

    def __init__(
        self,
        settings: Optional[StudioSettings] = None,
        detector: Optional[LabelDetector] = None,
        caption_writer: Optional[CaptionWriter] = None,
        synthesizer: Optional[VideoSynthesizer] = None,
    ):
        self.settings = settings or StudioSettings()
        self.detector = detector
        self.caption_writer = caption_writer or TemplateCaptionWriter()
        self.synthesizer = synthesizer or VideoSynthesizer(self.settings)

    def process_images(
        self,
        sources: Iterable[tuple[str, Source]],
        params: Optional[EnhancementParams] = None,
        brand: Optional[str] = None,
        style: "Style | str | None" = None,
    ) -> list[StudioItem]:
        """
        Enhance, label and caption a batch of images.

        Args:
            sources: (name, raster or encoded bytes) pairs
            params: Enhancement parameters shared by the batch
            brand: Optional brand name for the captions
            style: Style tag for the captions

        Returns:
            One item per source, in input order
        """
        named = list(sources)
        outcomes = enhance_batch(
            (source for _, source in named),
            params,
            settings=self.settings,
        )

        items: list[StudioItem] = []
        for (name, _), outcome in zip(named, outcomes):
            item = StudioItem(name=name)
            if not outcome.ok:
                item.error = outcome.error
                logger.warning(f"{name}: enhancement failed ({outcome.error})")
                items.append(item)
                continue

            item.asset = outcome.asset
            labels = detect_labels(self.detector, outcome.asset.raster, self.settings.detection_attempts)
            item.labels = sorted(labels, key=str.casefold)
            item.caption = self.caption_writer.caption(item.labels, brand, style or Style.CASUAL)
            logger.info(
                f"{name}: {item.asset.width}x{item.asset.height} (x{item.asset.scale}), "
                f"{len(item.labels)} labels"
            )
            items.append(item)
        return items

    async def generate_video(
        self,
        item: StudioItem,
        style: "Style | str | None" = None,
        brand: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StudioItem:
        """Run stage 2 for one item; a failure is stored on the item, not raised."""
        if item.asset is None:
            raise ValueError(f"{item.name} has no enhanced image to animate")
        try:
            item.video = await self.synthesizer.synthesize(
                item.asset, item.caption, style, brand, cancel_event
            )
            item.video_error = None
        except StudioError as e:
            item.video_error = e
            logger.warning(f"{item.name}: video synthesis failed ({e})")
        return item

    async def generate_videos(
        self,
        items: Iterable[StudioItem],
        style: "Style | str | None" = None,
        brand: Optional[str] = None,
    ) -> list[StudioItem]:
        """Synthesize videos for every enhanced item; jobs run concurrently."""
        ready = [item for item in items if item.ok]
        return list(await asyncio.gather(*(self.generate_video(item, style, brand) for item in ready)))
