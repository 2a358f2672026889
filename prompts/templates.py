"""Prompt templates offered by the template picker."""

from __future__ import annotations

from dataclasses import dataclass

SUBJECT_PLACEHOLDER = "[subject]"


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    pattern: str
    tags: tuple[str, ...]
    icon: str


# --- Built-in templates ---

PHOTOREALISTIC = PromptTemplate(
    name="Photorealistic",
    description="Highly detailed and realistic images",
    pattern=(
        "Photorealistic image of [subject], highly detailed, sharp focus, 8k, "
        "professional photography, natural lighting"
    ),
    tags=("realistic", "photography"),
    icon=":material/photo_camera:",
)

OIL_PAINTING = PromptTemplate(
    name="Oil Painting",
    description="Classic oil painting style",
    pattern=(
        "Oil painting of [subject], detailed brushwork, vibrant colors, artistic, "
        "in the style of classical art"
    ),
    tags=("art", "painting"),
    icon=":material/palette:",
)

WATERCOLOR = PromptTemplate(
    name="Watercolor",
    description="Soft watercolor illustration",
    pattern=(
        "Watercolor painting of [subject], soft colors, flowing, artistic, "
        "delicate brushstrokes"
    ),
    tags=("art", "painting"),
    icon=":material/brush:",
)

FANTASY = PromptTemplate(
    name="Fantasy",
    description="Magical fantasy scene",
    pattern=(
        "Fantasy scene of [subject], magical, ethereal, mystical atmosphere, "
        "detailed, vibrant colors"
    ),
    tags=("fantasy", "magical"),
    icon=":material/auto_awesome:",
)

LANDSCAPE = PromptTemplate(
    name="Landscape",
    description="Beautiful natural landscape",
    pattern=(
        "Breathtaking landscape of [subject], panoramic view, golden hour lighting, "
        "atmospheric, detailed"
    ),
    tags=("nature", "scenery"),
    icon=":material/landscape:",
)

CONCEPT_ART = PromptTemplate(
    name="Concept Art",
    description="Professional concept art",
    pattern=(
        "Professional concept art of [subject], detailed, vibrant colors, "
        "cinematic lighting, trending on ArtStation"
    ),
    tags=("art", "design"),
    icon=":material/format_paint:",
)

PROMPT_TEMPLATES: tuple[PromptTemplate, ...] = (
    PHOTOREALISTIC,
    OIL_PAINTING,
    WATERCOLOR,
    FANTASY,
    LANDSCAPE,
    CONCEPT_ART,
)

# Map of named templates
TEMPLATES: dict[str, PromptTemplate] = {t.name: t for t in PROMPT_TEMPLATES}


def categories() -> list[str]:
    """Unique tags across all templates, in first-seen order."""
    seen: dict[str, None] = {}
    for template in PROMPT_TEMPLATES:
        for tag in template.tags:
            seen.setdefault(tag, None)
    return list(seen)


def filter_templates(category: str | None = None) -> list[PromptTemplate]:
    if not category:
        return list(PROMPT_TEMPLATES)
    return [t for t in PROMPT_TEMPLATES if category in t.tags]


def select_template(template: PromptTemplate) -> str:
    """Template text with the subject placeholder removed, ready for the user to fill in."""
    return template.pattern.replace(SUBJECT_PLACEHOLDER, "", 1)
