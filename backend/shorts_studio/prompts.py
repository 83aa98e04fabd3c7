"""System instructions and user-prompt templates.

Templates are plain string substitution so that identical inputs always
produce identical prompts.
"""

from __future__ import annotations

import textwrap
from typing import Iterable, Optional

from .models import NO_MUSIC, Duration, Genre, Idea

IDEAS_SYSTEM_PROMPT = textwrap.dedent(
    """
    You are a viral short-form video strategist for YouTube Shorts, TikTok and Reels.
    When asked for ideas, return exactly the requested number of ideas as Markdown.
    Use this layout for every idea and nothing else:

    ### <number>. <Title>
    **Concept:** <one or two sentences>
    **Story Arc:** <hook -> build -> payoff in one or two sentences>
    **Visuals & Audio:** <key shots, sound effects and music cues>

    Every idea must be filmable within the requested duration.
    """
).strip()

TRENDING_TOPICS_SYSTEM_PROMPT = textwrap.dedent(
    """
    You are a social video trend analyst. For the genres you are given, list the
    topics currently trending on short-form video platforms.
    Reply with a single line of 5 to 10 short topics separated by commas.
    Do not number them, do not add explanations, do not add any other text.
    """
).strip()

SCRIPT_SYSTEM_PROMPT = textwrap.dedent(
    """
    You are a professional short-form video scriptwriter and director.
    Your scripts are production-ready and timed to the second.

    For the first script of a conversation, start with this block:

    **Suggested Narration Styles**
    1. **<Style Name>:** <how the narration sounds> *<why it fits this idea>*
    2. **<Style Name>:** <how the narration sounds> *<why it fits this idea>*
    3. **<Style Name>:** <how the narration sounds> *<why it fits this idea>*

    Then a line containing only three dashes (---), then the script.

    The script is a single Markdown table with these columns:
    | Timestamp | Visuals | Audio / SFX | Narration / Dialogue | On-screen Text |

    One row per beat. Timestamps use m:ss-m:ss. Keep every cell on one line.
    Revisions keep exactly the same table format and do not repeat the
    narration style block.
    """
).strip()

SEO_SYSTEM_PROMPT = textwrap.dedent(
    """
    You are a YouTube Shorts SEO specialist. From the idea and the final
    production script, write:
    - title: a curiosity-driven title under 70 characters;
    - description: two or three short paragraphs with a call to action;
    - tags: 10 to 20 keywords and hashtags, most relevant first.
    Respond only with JSON that matches the provided schema.
    """
).strip()

SEO_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["title", "description", "tags"],
}


def finalize_system_prompt(max_scene_duration: str, scene_count: Optional[int] = None) -> str:
    count_rule = (
        f"- Produce exactly {scene_count} scenes.\n"
        if scene_count
        else "- Choose the number of scenes that best fits the script.\n"
    )
    return (
        "You convert approved video scripts into structured production data.\n"
        "Return ONLY a JSON array, no commentary and no Markdown fences.\n"
        "Each element is one scene object with these keys:\n"
        '- "scene": scene number starting at 1;\n'
        '- "scene_timestamp": time range such as "0:00-0:08";\n'
        '- "duration_seconds": integer length of the scene;\n'
        '- "visual_prompt": a detailed, self-contained prompt for an AI video model;\n'
        '- "camera": shot type and movement;\n'
        '- "audio": sound effects and music cues;\n'
        '- "narration": spoken lines, or an empty string;\n'
        '- "on_screen_text": overlay text, or an empty string.\n'
        f"Rules:\n- No scene may be longer than {max_scene_duration} seconds; split longer beats.\n"
        f"{count_rule}"
        "- Keep the script's language for narration and on-screen text."
    )


def _require(**fields: object) -> None:
    missing = [name for name, value in fields.items() if value is None or str(value).strip() == ""]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")


def ideas_prompt(genre: Genre, duration: Duration, count: int = 10) -> str:
    return f"Generate {count} {genre.value} ideas for a {duration.value} video."


def trending_topics_prompt(genres: Iterable[Genre]) -> str:
    return f"Analyze trends for: {', '.join(genre.value for genre in genres)}"


def draft_script_prompt(
    idea: Idea,
    scene_duration: str,
    suppress_narration: bool,
    language: str,
) -> str:
    _require(
        title=idea.title,
        concept=idea.concept,
        scene_duration=scene_duration,
        language=language,
    )
    no_narration = "**Constraint:** No Narration Required.\n" if suppress_narration else ""
    return (
        "Generate a production-ready script for the following idea.\n\n"
        f"**Idea Title:** {idea.title}\n"
        f"**Concept:** {idea.concept}\n"
        f"**Story Arc:** {idea.story_arc}\n"
        f"**Genre:** {idea.genre.value}\n\n"
        f"{no_narration}"
        f"**Language:** Please write the entire script in {language}.\n\n"
        f"The target duration for this video is **{scene_duration}**.\n"
    )


def revise_script_prompt(
    scene_duration: str,
    suppress_narration: bool,
    language: str,
    suggestion: str,
    narration_style: Optional[str] = None,
) -> str:
    _require(scene_duration=scene_duration, language=language, suggestion=suggestion)
    style = (
        f'**Chosen Style:** Please ensure the tone and narration align with the "{narration_style}" style.\n'
        if narration_style
        else ""
    )
    no_narration = "**Constraint:** No Narration Required.\n" if suppress_narration else ""
    return (
        "Please generate a revised script.\n"
        f"{style}"
        f"**Language:** The revised script must be in {language}.\n"
        f'**Suggestion:** Incorporate this feedback: "{suggestion}".\n'
        f"{no_narration}"
        "Please maintain the same Markdown table format and adhere to the target "
        f"duration of **{scene_duration}**."
    )


def finalize_user_prompt(script: str) -> str:
    _require(script=script)
    return f"Please convert the following script into the specified JSON format.\n\n**Script:**\n{script}\n"


def seo_prompt(final_script_json: str, idea: Idea) -> str:
    _require(final_script=final_script_json, title=idea.title)
    return (
        "Generate the SEO package for the following video idea and script.\n\n"
        f"**Idea Title:** {idea.title}\n"
        f"**Concept:** {idea.concept}\n"
        f"**Genre:** {idea.genre.value}\n\n"
        "**Final Production Script (JSON):**\n"
        f"{final_script_json}\n"
    )


def video_prompt(idea: Idea, visual_style: str, music_mood: str) -> str:
    if music_mood == NO_MUSIC:
        audio = (
            "The video must not contain any background music. "
            "Rely only on sound effects as described in the cues."
        )
    else:
        audio = f"The video's soundtrack must be instrumental music with a clear **{music_mood}** mood."
    cues = idea.visuals_and_audio or idea.story_arc
    return (
        "Create a short video based on the following detailed creative brief.\n\n"
        f"**Title:** {idea.title}\n"
        f"**Core Concept:** {idea.concept}\n"
        f"**Detailed Cues:** {cues}\n\n"
        "**Mandatory Creative Direction:**\n"
        f"- **Visual Style:** Adhere strictly to a **{visual_style}** aesthetic.\n"
        f"- **Audio Direction:** {audio}\n"
    )
