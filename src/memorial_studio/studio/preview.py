"""Live preview of a memorial draft as visitors would see it."""

from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from datetime import date

from memorial_studio.domain.memorials import MemorialDraft, display_name
from memorial_studio.studio.debounce import Debouncer

THEME_CLASSIC = "classic"
THEME_MARIAN = "marian"
THEME_PHOTO_FIRST = "photo-first"

PLACEHOLDER_NAME = "Your Loved One"
PLACEHOLDER_DATES = "Dates to be added"
PLACEHOLDER_TITLE = "In Loving Memory"

GALLERY_LIMIT = 8
DESKTOP_REFRESH_SECONDS = 0.3
MOBILE_REFRESH_SECONDS = 0.5
THEME_STORAGE_KEY = "memorial-preview-theme"


@dataclass(frozen=True)
class ThemeStyle:
    name: str
    container: str
    header: str
    text: str
    accent: str
    hero_background: bool


THEMES = {
    THEME_CLASSIC: ThemeStyle(
        name=THEME_CLASSIC,
        container="bg-white",
        header="bg-gradient-to-b from-gray-50 to-white",
        text="text-gray-900",
        accent="text-marian-blue-500",
        hero_background=False,
    ),
    THEME_MARIAN: ThemeStyle(
        name=THEME_MARIAN,
        container="bg-gradient-to-b from-marian-blue-50 to-white",
        header="bg-gradient-to-b from-marian-blue-100 to-marian-blue-50",
        text="text-gray-900",
        accent="text-marian-blue-600",
        hero_background=False,
    ),
    THEME_PHOTO_FIRST: ThemeStyle(
        name=THEME_PHOTO_FIRST,
        container="bg-black",
        header="bg-gradient-to-b from-black/80 to-transparent",
        text="text-white",
        accent="text-liturgical-gold-400",
        hero_background=True,
    ),
}


@dataclass(frozen=True)
class PreviewPhoto:
    url: str
    alt: str


@dataclass(frozen=True)
class PreviewHero:
    name: str
    life_span: str
    title: str
    headline: str | None
    profile_photo_url: str | None
    background_url: str | None


@dataclass(frozen=True)
class PreviewSection:
    heading: str
    body: str


@dataclass(frozen=True)
class PreviewPage:
    """Rendered preview tree."""

    theme: ThemeStyle
    hero: PreviewHero
    sections: tuple[PreviewSection, ...]
    photos: tuple[PreviewPhoto, ...]
    more_photos: int


def resolve_theme(theme: str | None) -> ThemeStyle:
    """Return the style for a theme name, falling back to classic."""
    return THEMES.get(theme or THEME_CLASSIC, THEMES[THEME_CLASSIC])


def render_preview(draft: MemorialDraft, theme: str | None = None) -> PreviewPage:
    """Map a draft snapshot to the preview tree.

    Missing names, dates, title and media render as placeholders or are
    omitted, so an empty draft still produces a complete page.
    """
    style = resolve_theme(theme)
    name = display_name(draft) or PLACEHOLDER_NAME
    background = draft.cover_photo_url if style.hero_background else None
    hero = PreviewHero(
        name=name,
        life_span=life_span(draft.birth_date, draft.death_date),
        title=(draft.title or "").strip() or PLACEHOLDER_TITLE,
        headline=(draft.headline or "").strip() or None,
        profile_photo_url=draft.profile_photo_url or None,
        background_url=background or None,
    )

    sections = []
    if draft.obituary and draft.obituary.strip():
        sections.append(PreviewSection("Life Story", draft.obituary.strip()))
    if draft.biography and draft.biography.strip():
        sections.append(PreviewSection("Biography", draft.biography.strip()))

    photos = sorted(draft.photos or [], key=lambda photo: photo.order)
    shown = tuple(
        PreviewPhoto(
            url=photo.thumbnail_url or photo.url,
            alt=photo.caption or "Memorial photo",
        )
        for photo in photos[:GALLERY_LIMIT]
    )
    return PreviewPage(
        theme=style,
        hero=hero,
        sections=tuple(sections),
        photos=shown,
        more_photos=max(len(photos) - GALLERY_LIMIT, 0),
    )


def life_span(birth_date: str | None, death_date: str | None) -> str:
    """Format "1931 – 2024", or the placeholder when either year is unknown."""
    birth_year = _year(birth_date)
    death_year = _year(death_date)
    if birth_year is None or death_year is None:
        return PLACEHOLDER_DATES
    return f"{birth_year} – {death_year}"


def _year(raw: str | None) -> int | None:
    if not raw or not raw.strip():
        return None
    try:
        return date.fromisoformat(raw.strip()[:10]).year
    except ValueError:
        return None


class PreviewRefresher:
    """Debounces preview rendering separately from autosave."""

    def __init__(
        self, on_render: Callable[[PreviewPage], None], mobile: bool = False
    ) -> None:
        self._on_render = on_render
        self._debouncer: Debouncer[tuple[MemorialDraft, str]] = Debouncer(
            _refresh_delay(mobile), self._render
        )
        self.latest: PreviewPage | None = None

    def set_mobile(self, mobile: bool) -> None:
        self._debouncer.delay = _refresh_delay(mobile)

    def refresh(self, draft: MemorialDraft, theme: str) -> None:
        """Schedule a render of the latest snapshot."""
        self._debouncer.call((draft, theme))

    def render_now(self, draft: MemorialDraft, theme: str) -> PreviewPage:
        """Render immediately, dropping any pending refresh."""
        self._debouncer.cancel()
        self._render((draft, theme), self._debouncer.generation)
        return self.latest

    async def wait(self) -> None:
        await self._debouncer.wait()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def _render(self, snapshot: tuple[MemorialDraft, str], _: int) -> None:
        draft, theme = snapshot
        self.latest = render_preview(draft, theme)
        self._on_render(self.latest)


def _refresh_delay(mobile: bool) -> float:
    return MOBILE_REFRESH_SECONDS if mobile else DESKTOP_REFRESH_SECONDS


@dataclass
class ThemePreference:
    """Client-local theme choice, kept outside the draft."""

    storage: MutableMapping[str, str]
    key: str = THEME_STORAGE_KEY

    def load(self) -> str:
        saved = self.storage.get(self.key)
        return saved if saved in THEMES else THEME_CLASSIC

    def save(self, theme: str) -> str:
        """Persist a known theme and return the theme now in effect."""
        resolved = resolve_theme(theme).name
        self.storage[self.key] = resolved
        return resolved
