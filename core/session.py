"""Client-side state for the live prompt-to-image flow.

``PromptSession`` owns everything the page needs between script runs: the raw
and debounced prompt, the applied/pending settings pair, the generation
history and a cache of fetch outcomes keyed by
``(debounced prompt, user API key, iterative flag, applied settings)``.

Fetching is pull-based: callers invoke :meth:`PromptSession.sync` after any
state change and at most one fetch is issued per new key. Failures are cached
for their key and never retried automatically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from core.analytics import SessionAnalytics
from core.image_actions import ImageActionError, clipboard_script, decode_png, download_filename
from core.models import (
    DEFAULT_SETTINGS,
    Generation,
    GenerationSettings,
    ImageResponse,
    Notification,
    QueryState,
)
from prompts.templates import PromptTemplate, select_template

logger = logging.getLogger(__name__)

DEBOUNCE_S = 0.3
_CLOCK_EPSILON = 1e-9

Fetcher = Callable[[str, str, bool, GenerationSettings], ImageResponse]
FetchKey = tuple[str, str, bool, GenerationSettings]


class Debouncer:
    """Holds back a changing value until it has been stable for ``delay_s``."""

    def __init__(
        self,
        delay_s: float = DEBOUNCE_S,
        clock: Callable[[], float] = time.monotonic,
        initial: str = "",
    ) -> None:
        self.delay_s = delay_s
        self._clock = clock
        self._latest = initial
        self._settled = initial
        self._changed_at = clock()

    def push(self, value: str) -> None:
        if value == self._latest:
            return
        self._latest = value
        self._changed_at = self._clock()

    @property
    def latest(self) -> str:
        return self._latest

    @property
    def value(self) -> str:
        if self._settled != self._latest and self.remaining() <= 0.0:
            self._settled = self._latest
        return self._settled

    def remaining(self) -> float:
        if self._settled == self._latest:
            return 0.0
        elapsed = self._clock() - self._changed_at
        # Clock subtraction can land a hair short of the window.
        if elapsed + _CLOCK_EPSILON >= self.delay_s:
            return 0.0
        return self.delay_s - elapsed


class PromptSession:
    def __init__(
        self,
        fetcher: Fetcher,
        debounce_s: float = DEBOUNCE_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._debouncer = Debouncer(debounce_s, clock)
        self.user_api_key = ""
        self.iterative_mode = False
        self.applied_settings: GenerationSettings = DEFAULT_SETTINGS
        self.pending_settings: GenerationSettings = DEFAULT_SETTINGS
        self.generations: list[Generation] = []
        self.active_index: int | None = None
        self.notifications: list[Notification] = []
        self.analytics = SessionAnalytics()
        self._cache: dict[FetchKey, QueryState] = {}

    # ------------------------------------------------------------------
    # Prompt and fetch key
    # ------------------------------------------------------------------

    @property
    def prompt(self) -> str:
        return self._debouncer.latest

    def set_prompt(self, text: str) -> None:
        self._debouncer.push(text)

    @property
    def debounced_prompt(self) -> str:
        return self._debouncer.value

    @property
    def is_debouncing(self) -> bool:
        return self.prompt != self.debounced_prompt

    def debounce_remaining(self) -> float:
        return self._debouncer.remaining()

    def set_user_api_key(self, key: str) -> None:
        self.user_api_key = key

    def set_iterative_mode(self, enabled: bool) -> None:
        self.iterative_mode = bool(enabled)

    @property
    def fetch_key(self) -> FetchKey:
        return (self.debounced_prompt, self.user_api_key, self.iterative_mode, self.applied_settings)

    @property
    def fetch_enabled(self) -> bool:
        return bool(self.debounced_prompt.strip())

    @property
    def needs_fetch(self) -> bool:
        return self.fetch_enabled and self.fetch_key not in self._cache

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def sync(self) -> QueryState:
        """Fetch for the current key unless an outcome is already cached."""
        if not self.fetch_enabled:
            return QueryState()
        key = self.fetch_key
        if key not in self._cache:
            self._cache[key] = self._run_query(key)
        return self._cache[key]

    def refetch(self) -> QueryState:
        self._cache.pop(self.fetch_key, None)
        return self.sync()

    def _run_query(self, key: FetchKey) -> QueryState:
        prompt, user_api_key, iterative_mode, settings = key
        self.analytics.record_fetch()
        try:
            image = self._fetcher(prompt, user_api_key, iterative_mode, settings)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("Image fetch failed: %s", message)
            self.analytics.record_error(prompt, message)
            return QueryState(error=message)

        self.analytics.record_success(image)
        self._commit(prompt, image)
        return QueryState(data=image)

    def _commit(self, prompt: str, image: ImageResponse) -> None:
        if self.generations and self.generations[-1].image == image:
            return
        self.generations.append(Generation(prompt=prompt, image=image))
        self.active_index = len(self.generations) - 1

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_setting(self, name: str, value) -> None:
        self.pending_settings = self.pending_settings.with_value(name, value)

    @property
    def settings_changed(self) -> bool:
        return self.pending_settings != self.applied_settings

    def apply_settings(self) -> bool:
        if not self.settings_changed:
            return False
        self.applied_settings = self.pending_settings
        self.notify("Settings applied", "Your new settings will be used for future generations")
        if self.fetch_enabled:
            self.refetch()
        return True

    def reset_settings(self) -> None:
        self.pending_settings = DEFAULT_SETTINGS
        self.notify("Settings reset", "All settings have been reset to defaults")

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @property
    def active_generation(self) -> Generation | None:
        if self.active_index is None or not 0 <= self.active_index < len(self.generations):
            return None
        return self.generations[self.active_index]

    @property
    def active_image(self) -> ImageResponse | None:
        generation = self.active_generation
        return generation.image if generation else None

    def select_generation(self, index: int) -> None:
        if not 0 <= index < len(self.generations):
            raise IndexError(f"No generation at index {index}")
        self.active_index = index

    def clear_history(self) -> None:
        self.generations = []
        self.active_index = None
        self.notify("History cleared", "All generated images have been removed")

    def apply_template(self, template: PromptTemplate) -> None:
        self.set_prompt(select_template(template))

    # ------------------------------------------------------------------
    # Image actions and notifications
    # ------------------------------------------------------------------

    def prepare_download(self, now: float | None = None) -> tuple[str, bytes] | None:
        image = self.active_image
        if image is None:
            return None
        try:
            data = decode_png(image.b64_json)
        except ImageActionError as exc:
            logger.warning("Download failed: %s", exc)
            self.notify("Download failed", str(exc), variant="destructive")
            return None
        return download_filename(now), data

    def confirm_download(self) -> None:
        self.notify("Image downloaded", "The image has been saved to your device")

    def copy_active(self) -> str | None:
        image = self.active_image
        if image is None:
            return None
        try:
            decode_png(image.b64_json)
        except ImageActionError as exc:
            logger.warning("Copy failed: %s", exc)
            self.notify("Copy failed", "Your browser may not support this feature", variant="destructive")
            return None
        return clipboard_script(image.b64_json)

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.notifications.append(Notification(title, description, variant))

    def drain_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending
