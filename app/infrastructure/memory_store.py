"""In-memory content repository.

Keeps channels, templates, content items and the activity log in process
memory. Used for development, dry runs and tests; production deployments
plug a persistent repository into the same interface.
"""

from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from app.config.channel import Channel
from app.config.template import ContentTemplate
from app.core.exceptions import RecordNotFoundError
from app.core.logging import get_logger
from app.models.activity import ActivityLogEntry
from app.models.content_item import ContentItem

logger = get_logger(__name__)


class InMemoryContentRepository:
    """Content repository kept in process memory.

    Content items are copied on the way in and out, so callers only see
    changes they save.
    """

    def __init__(
        self,
        channels: Iterable[Channel] = (),
        templates: Iterable[ContentTemplate] = (),
    ) -> None:
        self._channels: dict[str, Channel] = {channel.id: channel for channel in channels}
        self._templates: dict[str, ContentTemplate] = {
            template.id: template for template in templates
        }
        self._items: dict[str, ContentItem] = {}
        self._activity: list[ActivityLogEntry] = []

    # Channels

    def add_channel(self, channel: Channel) -> None:
        """Register or replace a channel."""
        self._channels[channel.id] = channel

    async def get_channel(self, channel_id: str) -> Channel | None:
        return self._channels.get(channel_id)

    async def list_channels(self) -> list[Channel]:
        return list(self._channels.values())

    async def mark_channel_generated(self, channel_id: str, at: datetime) -> None:
        """Stamp the channel's last successful scheduled run."""
        channel = self._channels.get(channel_id)
        if channel is None:
            raise RecordNotFoundError("Channel", channel_id)
        self._channels[channel_id] = channel.model_copy(update={"last_video_generated": at})

    # Templates

    def add_template(self, template: ContentTemplate) -> None:
        """Register or replace a template."""
        self._templates[template.id] = template

    async def get_template(self, template_id: str) -> ContentTemplate | None:
        return self._templates.get(template_id)

    async def list_templates(self) -> list[ContentTemplate]:
        return list(self._templates.values())

    # Content items

    async def create_content_item(self, item: ContentItem) -> ContentItem:
        self._items[item.id] = replace(item)
        logger.debug("Content item created", content_item_id=item.id)
        return replace(item)

    async def get_content_item(self, item_id: str) -> ContentItem | None:
        item = self._items.get(item_id)
        return replace(item) if item else None

    async def save_content_item(self, item: ContentItem) -> None:
        if item.id not in self._items:
            raise RecordNotFoundError("ContentItem", item.id)
        self._items[item.id] = replace(item)

    async def list_content_items(self, channel_id: str | None = None) -> list[ContentItem]:
        return [
            replace(item)
            for item in self._items.values()
            if channel_id is None or item.channel_id == channel_id
        ]

    # Activity log

    async def add_activity(self, entry: ActivityLogEntry) -> None:
        self._activity.append(entry)

    async def list_activity(self, entity_id: str | None = None) -> Sequence[ActivityLogEntry]:
        return [
            entry for entry in self._activity if entity_id is None or entry.entity_id == entity_id
        ]


__all__ = ["InMemoryContentRepository"]
