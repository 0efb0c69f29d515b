from __future__ import annotations

from app.api.models import ThemeInfo


THEMES: tuple[ThemeInfo, ...] = (
    ThemeInfo(
        id="medieval-fantasy",
        name="Medieval Fantasy",
        description="Embark on a classic fantasy adventure with knights, dragons, magic, and ancient kingdoms.",
        icon="⚔️",
    ),
    ThemeInfo(
        id="sci-fi-space",
        name="Sci-Fi Space Opera",
        description="Explore the cosmos in a futuristic universe filled with alien civilizations and advanced technology.",
        icon="🚀",
    ),
    ThemeInfo(
        id="horror-gothic",
        name="Gothic Horror",
        description="Survive a dark gothic world of supernatural creatures, cursed lands, and terrifying encounters.",
        icon="🦇",
    ),
    ThemeInfo(
        id="cyberpunk",
        name="Cyberpunk Dystopia",
        description="Navigate a neon-lit cyberpunk world of megacorporations, hackers, and cybernetic enhancements.",
        icon="🤖",
    ),
    ThemeInfo(
        id="post-apocalyptic",
        name="Post-Apocalyptic",
        description="Survive in a wasteland filled with mutants, scavengers, and the remnants of civilization.",
        icon="☢️",
    ),
    ThemeInfo(
        id="steampunk",
        name="Steampunk Victorian",
        description="Adventure through a Victorian era powered by steam technology, airships, and brilliant inventors.",
        icon="⚙️",
    ),
)

# Setting text injected into the narrator's system prompt.
WORLD_DESCRIPTIONS: dict[str, str] = {
    "medieval-fantasy": "a classic medieval fantasy world with knights, dragons, magic, and ancient kingdoms",
    "sci-fi-space": (
        "a futuristic sci-fi universe with space travel, alien civilizations, advanced technology, and cosmic mysteries"
    ),
    "horror-gothic": (
        "a dark gothic horror setting with supernatural creatures, cursed lands, mysterious fog, and terrifying encounters"
    ),
    "cyberpunk": "a cyberpunk dystopia with megacorporations, hackers, cybernetic enhancements, and neon-lit streets",
    "post-apocalyptic": "a post-apocalyptic wasteland with mutants, survivors, scarce resources, and the struggle for survival",
    "steampunk": (
        "a steampunk Victorian era with steam-powered machines, airships, inventors, and industrial revolution aesthetics"
    ),
}

_BY_ID = {t.id: t for t in THEMES}


def list_themes() -> list[ThemeInfo]:
    return list(THEMES)


def get_theme(theme_id: str) -> ThemeInfo | None:
    return _BY_ID.get(theme_id.strip().casefold())


def world_description(theme_id: str) -> str:
    theme = get_theme(theme_id)
    if theme is None:
        raise ValueError(f"Unknown theme: {theme_id}")
    return WORLD_DESCRIPTIONS[theme.id]
