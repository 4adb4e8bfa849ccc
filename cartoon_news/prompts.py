"""Prompt builders for cartoon generation."""

import json
from collections.abc import Sequence
from typing import Any

from .models import ArticleRecord, CartoonConcept, ComicScript

CONCEPT_COUNT = 5
MAX_TEXT_WORDS = 4

# Sample panels shown to the model; sliced to the requested panel count
EXAMPLE_PANELS = [
    {
        "panelNumber": 1,
        "newsContext": "A politician announces new economic policies without understanding basic economics",
        "visualDescription": "Medium shot of a disheveled politician at a podium, hair messy and tie crooked. He scratches his head with one hand and grips the podium with the other. Behind him a campaign banner is falling off the wall.",
        "visibleText": [{"type": "sign", "content": "VOTE NOW"}],
        "characters": ["politician"],
        "setting": "podium",
    },
    {
        "panelNumber": 2,
        "newsContext": "He explains the policy with data he clearly does not understand",
        "visualDescription": "The politician holds up a large economic chart upside down with an enormous proud smile. An advisor in the background frantically gestures to flip it.",
        "visibleText": [{"type": "dialogue", "content": "IT WORKS!"}],
        "characters": ["politician", "advisor"],
        "setting": "podium",
    },
    {
        "panelNumber": 3,
        "newsContext": "The public reacts to the presentation",
        "visualDescription": "Wide shot of a packed audience facepalming in perfect unison. Some peek through their fingers in disbelief.",
        "visibleText": [{"type": "dialogue", "content": "REALLY?"}],
        "characters": ["crowd"],
        "setting": "audience area",
    },
    {
        "panelNumber": 4,
        "newsContext": "The politician remains blissfully unaware of the failure",
        "visualDescription": "Close-up of the politician shrugging with the biggest clueless grin. Confetti falls around him as if he is celebrating.",
        "visibleText": [{"type": "caption", "content": "THE END"}],
        "characters": ["politician"],
        "setting": "podium",
    },
]


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def spell_with_brackets(text: str) -> str:
    """``"HI"`` -> ``"[H] [I]"``, so the image model renders letter by letter."""
    return " ".join(f"[{char}]" for char in text)


def example_script_json(panel_count: int) -> str:
    count = panel_count if 1 <= panel_count <= len(EXAMPLE_PANELS) else len(EXAMPLE_PANELS)
    return json.dumps(EXAMPLE_PANELS[:count], indent=2)


def extract_text_elements(script: ComicScript) -> list[dict[str, Any]]:
    """Visible text of every panel, upper-cased, at most four words each."""
    elements = []
    for index, panel in enumerate(script.panels, start=1):
        for text in panel.visible_text:
            cleaned = (text.content or "").strip().upper()
            if cleaned and len(cleaned.split()) <= MAX_TEXT_WORDS:
                elements.append(
                    {"panel": index, "text": cleaned, "type": text.type or "sign"}
                )
    return elements


def build_concept_prompt(articles: Sequence[ArticleRecord], location: str) -> str:
    headlines = "\n".join(
        f"- {article.title}\n  {article.description or ''}" for article in articles
    )
    return f"""You are a brilliant editorial cartoonist specializing in VISUAL humor and sharp satire.

NEWS HEADLINES from {location}:
{headlines}

COMEDY TECHNIQUE INSTRUCTIONS:
Generate {CONCEPT_COUNT} cartoon concepts using DIFFERENT comedy techniques from this list:

1. VISUAL PUN: Transform a key element into its literal visual representation
2. ROLE REVERSAL: Swap expected positions
3. EXAGGERATION: Take one aspect to absurd extremes
4. JUXTAPOSITION: Place contrasting elements side by side for ironic effect
5. ANTHROPOMORPHISM: Give human traits to objects or concepts in the story
6. ANACHRONISM: Show a modern problem in a historical setting or vice versa
7. PERSPECTIVE SHIFT: Show the story from the POV of an unexpected character
8. SCALE INVERSION: Make important things tiny and trivial things enormous

REQUIREMENTS FOR EACH CONCEPT:
- Must be funny WITHOUT dialogue (visual gag primary)
- Focus on IRONY and ABSURDITY, not just illustration
- Make it work as a SILENT film scene

AVOID:
- Concepts that require text to be funny
- Offensive stereotypes
- Purely verbal puns

Generate exactly {CONCEPT_COUNT} concepts as JSON array with these fields:
- title: Catchy name for the cartoon
- premise: VISUAL description of what viewers will SEE (not read)
- why_funny: The comedic technique used and why it creates humor

Focus on SHOWING the absurdity, not telling it."""


def build_comic_prompt(
    concept: CartoonConcept, articles: Sequence[ArticleRecord], panel_count: int = 4
) -> str:
    news_section = ""
    if articles:
        stories = "\n".join(
            f"- {article.title}\n  Summary: {article.description or 'No description available'}"
            for article in articles[:3]
        )
        news_section = f"\nNEWS STORIES BEING SATIRIZED:\n{stories}\n"

    return f"""Create a DETAILED comic strip script with EXACTLY {panel_count} panel{_plural(panel_count)}.

CARTOON CONCEPT:
Title: {concept.title}
Premise: {concept.premise}
Why it's funny: {concept.why_funny or 'Visual satire of current events'}
Setting: {concept.location}
{news_section}
IMPORTANT: The first panel establishes the news context, the following panels develop the satirical joke and the final panel delivers the punchline.

RESPOND WITH VALID JSON ONLY. No markdown, no explanation. Pure JSON array.

Each panel is a JSON object with these EXACT fields:
panelNumber, newsContext, visualDescription, visibleText (list of {{"type", "content"}}), characters, setting

VISUAL DESCRIPTION: 4-6 detailed sentences per panel covering poses, facial expressions, background, props, camera angle and how the news story is represented.

TEXT RULES:
1. EXACTLY {panel_count} panel(s) - no more, no less
2. Maximum 3 words per text element (dialogue, sign, caption)
3. ONLY text in "visibleText" will be rendered
4. ALL TEXT MUST BE IN ALL CAPS

EXAMPLE FOR {panel_count} PANEL{_plural(panel_count).upper()}:
{example_script_json(panel_count)}

Generate the JSON array now:"""


def build_image_prompt(
    concept: CartoonConcept, script: ComicScript, panel_count: int = 4
) -> str:
    elements = extract_text_elements(script)
    manifest = ""
    if elements:
        lines = "\n".join(
            f"Panel {element['panel']} ({element['type']}): [{spell_with_brackets(element['text'])}]"
            for element in elements
        )
        manifest = f"\nTEXT TO RENDER IN IMAGE:\n{lines}\n"

    if panel_count == 1:
        layout = "Single panel editorial cartoon"
    else:
        layout = f"{panel_count}-panel comic strip (horizontal layout)"

    panels = "\n".join(
        f"Panel {index}: {panel.visual_description or 'Visual scene'}"
        for index, panel in enumerate(script.panels, start=1)
    )

    return f"""Generate a cartoon image: {layout}

CONCEPT:
Title: {concept.title}
Premise: {concept.premise}
Location: {concept.location}

VISUAL DESCRIPTION:
{panels}
{manifest}
TEXT RENDERING RULES:
1. ONLY text shown above should appear in the image
2. Use BOLD, SANS-SERIF font, ALL CAPS, LARGE and PROMINENT
3. Maximum 3 words per text element

VISUAL STYLE:
- Professional editorial cartoon quality with sharp, clean line art
- Expressive character faces and body language
- Bright, newspaper-appropriate colors

TEXT VERIFICATION: Render EXACTLY as shown in text list above."""


def build_humor_score_prompt(title: str, description: str | None = None) -> str:
    description_line = f"Description: {description}" if description else ""
    return f"""You are a comedy analyst evaluating news for editorial cartoon potential.

Title: {title}
{description_line}

Score this on five humor dimensions (0-20 each): ABSURDITY, IRONY, VISUAL POTENTIAL, RELATABILITY, BENIGN VIOLATION.

Add the scores for a total out of 100.

Respond with ONLY the total number (1-100)."""


def build_batch_analysis_prompt(batch: Sequence[ArticleRecord]) -> str:
    blocks = []
    for index, article in enumerate(batch, start=1):
        excerpt = f"Content excerpt: {article.content[:300]}..." if article.content else ""
        blocks.append(
            f"Article {index}:\nTitle: {article.title}\n"
            f"Description: {article.description or 'No description'}\n{excerpt}"
        )
    articles_text = "\n---\n".join(blocks)

    return f"""You are an expert editorial cartoonist analyzing news articles for their cartoon potential.

Analyze these {len(batch)} news articles and for each one provide:
1. A 1-2 paragraph summary highlighting the satirical angle and comedic elements
2. A humor score from 1-100 based on cartoon potential

Articles:
{articles_text}

Respond ONLY with a valid JSON array with EXACTLY {len(batch)} entries, in this format:
[
  {{"summary": "The satirical angle here is...", "humorScore": 75}}
]"""
