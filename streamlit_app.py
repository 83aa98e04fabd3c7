"""Main Streamlit UI for Shorts Script Studio.

Ideas -> trending topics -> streamed script drafting and revision ->
structured scenes -> SEO kit, plus one-click video rendering and a session
history of finished scripts.
"""

from __future__ import annotations

import html
import json
import os
import sys
from pathlib import Path
from typing import Any

import streamlit as st

# Ensure backend package is importable when running `streamlit run streamlit_app.py`.
ROOT = Path(__file__).resolve().parent
BACKEND_ROOT = ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

SECRET_ENV_KEYS = (
    "GEMINI_API_KEY",
    "GEMINI_BASE_URL",
    "GEMINI_TEXT_MODEL",
    "VEO_MODEL",
    "VIDEO_POLL_INTERVAL_SECONDS",
    "VIDEO_MAX_WAIT_SECONDS",
)


def _hydrate_env_from_streamlit_secrets() -> None:
    """Load Gemini config from Streamlit Secrets into env when not already set."""
    try:
        secrets = st.secrets.to_dict()
    except Exception:
        # No secrets.toml, or not running under `streamlit run`.
        return

    gemini_block = secrets.get("gemini")
    if isinstance(gemini_block, dict):
        mapping = {
            "api_key": "GEMINI_API_KEY",
            "base_url": "GEMINI_BASE_URL",
            "text_model": "GEMINI_TEXT_MODEL",
            "video_model": "VEO_MODEL",
        }
        for secret_key, env_key in mapping.items():
            value = gemini_block.get(secret_key)
            if isinstance(value, str) and value.strip() and not os.getenv(env_key):
                os.environ[env_key] = value.strip()

    for key, value in secrets.items():
        if not isinstance(key, str) or not isinstance(value, (str, int, float)):
            continue
        value = str(value).strip()
        if not value or os.getenv(key):
            continue
        if key in SECRET_ENV_KEYS or key.startswith(
            ("GEMINI_API_KEY_FALLBACK_", "GEMINI_BASE_URL_FALLBACK_", "GEMINI_MODEL_FALLBACK_")
        ):
            os.environ[key] = value


_hydrate_env_from_streamlit_secrets()

from shorts_studio.app import create_app  # noqa: E402
from shorts_studio.errors import ConfigError, StudioError  # noqa: E402
from shorts_studio.models import (  # noqa: E402
    LANGUAGES,
    MUSIC_MOODS,
    VISUAL_STYLES,
    Duration,
    Genre,
    HistoryItem,
    Idea,
    SeoContent,
)
from shorts_studio.parsing import parse_ideas, parse_scenes, parse_script_table  # noqa: E402
from shorts_studio.workflow import (  # noqa: E402
    MAX_SCENE_SECONDS,
    MIN_SCENE_SECONDS,
    STABLE_STATES,
    ScriptHistory,
    ScriptWorkflow,
    WorkflowState,
)

GENRES = [genre.value for genre in Genre]
DURATIONS = [duration.value for duration in Duration]


@st.cache_resource
def _get_app() -> dict[str, Any]:
    return create_app()


def _rerun() -> None:
    try:
        st.rerun()
    except AttributeError:
        st.experimental_rerun()


def _init_state() -> None:
    defaults = {
        "sss_genre": GENRES[0],
        "sss_duration": Duration.SHORTS_30.value,
        "sss_ideas_text": "",
        "sss_ideas": [],
        "sss_trend_genres": [GENRES[0]],
        "sss_topics": [],
        "sss_workflows": {},
        "sss_active_idea": None,
        "sss_language": LANGUAGES[0],
        "sss_script_duration": Duration.SHORTS_30.value,
        "sss_no_narration": False,
        "sss_suggestion": "",
        "sss_max_scene_seconds": 15,
        "sss_scene_count": "",
        "sss_video_idea": None,
        "sss_visual_style": VISUAL_STYLES[0],
        "sss_music_mood": MUSIC_MOODS[0],
        "sss_video": None,
        "sss_status_line": "Ready.",
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)
    if "sss_history" not in st.session_state:
        st.session_state["sss_history"] = ScriptHistory()


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .idea-card {
            border: 1px solid #e2e8f0;
            border-radius: 14px;
            padding: 0.9rem 1.1rem;
            margin-bottom: 0.4rem;
            background: #ffffff;
        }
        .idea-card h4 { margin: 0 0 0.35rem 0; color: #1e293b; }
        .idea-card p { margin: 0.15rem 0; color: #475569; font-size: 0.92rem; }
        .chip {
            display: inline-block;
            background: #cffafe;
            color: #155e75;
            border-radius: 999px;
            padding: 0.15rem 0.65rem;
            margin: 0.15rem;
            font-size: 0.8rem;
            font-weight: 600;
        }
        .status-card {
            border-left: 4px solid #c026d3;
            background: #fdf4ff;
            padding: 0.5rem 0.9rem;
            border-radius: 8px;
            color: #4a044e;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _chips_html(values: list[str]) -> str:
    return "".join(f"<span class='chip'>{html.escape(value)}</span>" for value in values)


def _scene_label(scene: dict[str, Any], index: int) -> str:
    number = scene.get("scene", index + 1)
    timestamp = scene.get("scene_timestamp")
    return f"Scene {number} ({timestamp})" if timestamp else f"Scene {number}"


def _pretty_json(json_text: str) -> str:
    """Indent valid JSON; anything else comes back untouched."""
    try:
        return json.dumps(json.loads(json_text), indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return json_text


def _history_export(item: HistoryItem) -> str:
    payload = {
        "idea": {
            "title": item.idea.title,
            "concept": item.idea.concept,
            "story_arc": item.idea.story_arc,
            "genre": item.idea.genre.value,
            "duration": item.idea.duration.value,
        },
        "scenes": parse_scenes(item.final_script) or item.final_script,
        "seo": {"title": item.seo.title, "description": item.seo.description, "tags": item.seo.tags},
        "created_at": item.created_at.isoformat(timespec="seconds"),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _slug(text: str) -> str:
    cleaned = "".join(ch.lower() if ch.isalnum() else "-" for ch in text)
    return "-".join(part for part in cleaned.split("-") if part)[:48] or "script"


def _set_status(message: str) -> None:
    st.session_state["sss_status_line"] = message


def _active_workflow() -> ScriptWorkflow | None:
    title = st.session_state["sss_active_idea"]
    if not title:
        return None
    return st.session_state["sss_workflows"].get(title)


def _open_workflow(idea: Idea, orchestrator: Any) -> None:
    workflows = st.session_state["sss_workflows"]
    if idea.title not in workflows:
        workflows[idea.title] = ScriptWorkflow(idea, orchestrator, st.session_state["sss_history"])
    st.session_state["sss_active_idea"] = idea.title
    st.session_state["sss_script_duration"] = idea.duration.value
    _set_status(f"Script Studio opened for '{idea.title}'.")


def _render_script_table(markdown: str) -> None:
    table = parse_script_table(markdown)
    if table is None:
        st.code(markdown, language="markdown")
        return
    width = len(table.header)
    rows = [(row + [""] * width)[:width] for row in table.rows]
    st.dataframe(
        [dict(zip(table.header, row)) for row in rows],
        use_container_width=True,
        hide_index=True,
    )


def _render_final_scenes(json_text: str) -> None:
    scenes = parse_scenes(json_text)
    if scenes is None:
        st.code(json_text)
        return
    for index, scene in enumerate(scenes):
        with st.expander(_scene_label(scene, index), expanded=index == 0):
            st.json(scene)


def _render_seo(seo: SeoContent) -> None:
    st.markdown("#### SEO & Marketing Kit")
    st.caption("Generated title")
    st.code(seo.title, language=None)
    st.caption("Generated description")
    st.code(seo.description, language=None)
    st.caption("Hashtags & keywords")
    if seo.tags:
        st.markdown(_chips_html(seo.tags), unsafe_allow_html=True)
        st.code(seo.tags_text(), language=None)
    else:
        st.write("No tags returned.")


def _ideas_tab(orchestrator: Any) -> None:
    st.subheader("Idea Generator")
    st.caption("Pick a genre and a length, get ten ready-to-shoot concepts.")

    cols = st.columns([1, 1, 1])
    cols[0].selectbox("Genre", GENRES, key="sss_genre")
    cols[1].selectbox("Duration", DURATIONS, key="sss_duration")
    generate = cols[2].button("Generate Ideas", type="primary", use_container_width=True)

    if generate:
        genre = Genre(st.session_state["sss_genre"])
        duration = Duration(st.session_state["sss_duration"])
        try:
            with st.spinner("Brainstorming ideas..."):
                text = orchestrator.list_ideas(genre, duration)
        except StudioError as exc:
            st.error(str(exc))
        else:
            st.session_state["sss_ideas_text"] = text
            st.session_state["sss_ideas"] = parse_ideas(text, genre, duration)
            _set_status(f"Generated ideas for {genre.value} ({duration.value}).")

    ideas: list[Idea] = st.session_state["sss_ideas"]
    if not ideas:
        if st.session_state["sss_ideas_text"]:
            st.markdown(st.session_state["sss_ideas_text"])
        return

    for index, idea in enumerate(ideas):
        st.markdown(
            f"""
            <div class="idea-card">
              <h4>{index + 1}. {html.escape(idea.title)}</h4>
              <p><strong>Concept:</strong> {html.escape(idea.concept)}</p>
              <p><strong>Story arc:</strong> {html.escape(idea.story_arc)}</p>
              <p>{_chips_html([idea.genre.value, idea.duration.value])}</p>
            </div>
            """,
            unsafe_allow_html=True,
        )
        btn_a, btn_b = st.columns(2)
        if btn_a.button("Write Script", key=f"idea_script_{index}", use_container_width=True):
            _open_workflow(idea, orchestrator)
            _rerun()
        if btn_b.button("Make Video", key=f"idea_video_{index}", use_container_width=True):
            st.session_state["sss_video_idea"] = idea
            st.session_state["sss_video"] = None
            _set_status(f"Video tab loaded with '{idea.title}'.")
            _rerun()


def _trends_tab(orchestrator: Any) -> None:
    st.subheader("Trend Radar")
    st.caption("See what is trending for the genres you create in.")
    st.multiselect("Genres", GENRES, key="sss_trend_genres")
    if st.button("Analyze Trends", type="primary"):
        if not st.session_state["sss_trend_genres"]:
            st.warning("Pick at least one genre.")
        else:
            try:
                with st.spinner("Scanning trends..."):
                    topics = orchestrator.list_trending_topics(st.session_state["sss_trend_genres"])
            except StudioError as exc:
                st.error(str(exc))
            else:
                st.session_state["sss_topics"] = topics
                _set_status(f"Found {len(topics)} trending topics.")

    topics = st.session_state["sss_topics"]
    if topics:
        st.markdown(_chips_html(topics), unsafe_allow_html=True)


def _draft_controls() -> None:
    cols = st.columns(3)
    cols[0].selectbox("Language", LANGUAGES, key="sss_language")
    cols[1].selectbox("Target duration", DURATIONS, key="sss_script_duration")
    cols[2].checkbox("No Narration Required", key="sss_no_narration")


def _stream_into(placeholder: Any, fragments: Any) -> bool:
    """Write a draft stream progressively; False when it failed."""
    try:
        with placeholder.container():
            st.write_stream(fragments)
    except StudioError as exc:
        st.error(str(exc))
        return False
    return True


def _script_tab() -> None:
    st.subheader("Script Studio")
    workflow = _active_workflow()
    if workflow is None:
        st.info("Choose an idea in the Ideas tab and press 'Write Script'.")
        return

    if workflow.state not in STABLE_STATES and workflow.state != WorkflowState.ERROR:
        # stream dropped by an earlier run; nothing is in flight during a rerun
        workflow.recover()

    idea = workflow.idea
    st.markdown(f"**Idea:** {idea.title}  \n{idea.concept}")

    if workflow.state == WorkflowState.ERROR:
        st.error(f"Last action failed: {workflow.error}")
        if st.button("Dismiss", key="wf_recover"):
            workflow.recover()
            _rerun()

    stable = workflow.stable_state
    stream_slot = st.empty()

    if stable == WorkflowState.IDLE:
        _draft_controls()
        if st.button("Generate Script", type="primary"):
            try:
                fragments = workflow.draft_script(
                    st.session_state["sss_script_duration"],
                    st.session_state["sss_no_narration"],
                    st.session_state["sss_language"],
                )
            except (StudioError, ValueError) as exc:
                st.error(str(exc))
            else:
                if _stream_into(stream_slot, fragments):
                    _set_status("First draft ready.")
                    _rerun()
        return

    if workflow.narration_styles and stable == WorkflowState.DRAFT_READY:
        names = [style.name for style in workflow.narration_styles]
        st.markdown("#### Select a Narration Style")
        for style in workflow.narration_styles:
            note = f" _{style.justification}_" if style.justification else ""
            st.markdown(f"- **{style.name}:** {style.description}{note}")
        chosen = st.radio(
            "Narration style",
            names,
            index=names.index(workflow.selected_style) if workflow.selected_style in names else 0,
            horizontal=True,
            label_visibility="collapsed",
        )
        if chosen != workflow.selected_style:
            workflow.select_narration_style(chosen)

    with stream_slot.container():
        st.markdown("#### Generated Script")
        _render_script_table(workflow.scene_table_text)
    st.download_button(
        "Download Script",
        data=workflow.scene_table_text,
        file_name=f"{_slug(idea.title)}-script.md",
        mime="text/markdown",
        key="dl_script",
    )

    if stable == WorkflowState.DRAFT_READY:
        st.markdown("#### Make some changes?")
        _draft_controls()
        st.text_input("Suggestion", key="sss_suggestion", placeholder="e.g., Make the ending more dramatic")
        if st.button("Regenerate with Suggestion", disabled=not st.session_state["sss_suggestion"].strip()):
            try:
                fragments = workflow.revise_script(
                    st.session_state["sss_suggestion"],
                    st.session_state["sss_script_duration"],
                    st.session_state["sss_no_narration"],
                    st.session_state["sss_language"],
                )
            except (StudioError, ValueError) as exc:
                st.error(str(exc))
            else:
                if _stream_into(stream_slot, fragments):
                    _set_status("Revision ready.")
                    _rerun()

        st.markdown("#### Finalize")
        cols = st.columns(3)
        cols[0].text_input("Number of scenes", key="sss_scene_count", placeholder="Auto")
        cols[1].number_input(
            "Max scene duration (s)",
            min_value=MIN_SCENE_SECONDS,
            max_value=MAX_SCENE_SECONDS,
            key="sss_max_scene_seconds",
        )
        if cols[2].button("Finalize Script as JSON", type="primary", use_container_width=True):
            try:
                with st.spinner("Converting script to scenes..."):
                    workflow.finalize(
                        st.session_state["sss_max_scene_seconds"],
                        st.session_state["sss_scene_count"] or None,
                    )
            except (StudioError, ValueError) as exc:
                st.error(str(exc))
            else:
                _set_status("Script finalized.")
                _rerun()
        return

    if workflow.final_script is not None:
        st.markdown("#### Final Production JSON")
        _render_final_scenes(workflow.final_script)
        st.download_button(
            "Download JSON",
            data=_pretty_json(workflow.final_script),
            file_name=f"{_slug(idea.title)}-scenes.json",
            mime="application/json",
            key="dl_final_json",
        )

    if stable == WorkflowState.FINALIZED:
        if st.button("Generate SEO Kit", type="primary"):
            try:
                with st.spinner("Writing title, description and tags..."):
                    workflow.generate_seo()
            except StudioError as exc:
                st.error(str(exc))
            else:
                _set_status(f"SEO kit ready for '{idea.title}'.")
                _rerun()

    if workflow.seo is not None:
        _render_seo(workflow.seo)


def _video_tab(orchestrator: Any) -> None:
    st.subheader("Video Lab")
    idea: Idea | None = st.session_state["sss_video_idea"]
    if idea is None:
        st.info("Press 'Make Video' on an idea to render it.")
        return

    st.markdown(f"**Idea:** {idea.title}")
    cols = st.columns(2)
    cols[0].selectbox("Visual style", VISUAL_STYLES, key="sss_visual_style")
    cols[1].selectbox("Music mood", MUSIC_MOODS, key="sss_music_mood")
    if st.button("Generate Video", type="primary"):
        try:
            with st.spinner("Rendering video. This usually takes a few minutes..."):
                video = orchestrator.generate_video(
                    idea,
                    st.session_state["sss_visual_style"],
                    st.session_state["sss_music_mood"],
                )
        except StudioError as exc:
            st.error(str(exc))
        else:
            st.session_state["sss_video"] = video
            _set_status(f"Video rendered for '{idea.title}'.")

    video = st.session_state["sss_video"]
    if video is not None:
        st.video(video.data, format=video.mime_type)
        st.download_button(
            "Download Video",
            data=video.data,
            file_name=f"{_slug(idea.title)}.mp4",
            mime=video.mime_type,
            key="dl_video",
        )


def _history_tab() -> None:
    st.subheader("Script History")
    history: ScriptHistory = st.session_state["sss_history"]
    if not len(history):
        st.info("Finish a script through the SEO step to see it here.")
        return

    for index, item in enumerate(history.latest_first()):
        label = f"{item.idea.title}  ({item.created_at.strftime('%Y-%m-%d %H:%M')})"
        with st.expander(label, expanded=index == 0):
            st.markdown("#### Final Production JSON")
            st.code(_pretty_json(item.final_script), language="json")
            _render_seo(item.seo)
            st.download_button(
                "Download Package",
                data=_history_export(item),
                file_name=f"{_slug(item.idea.title)}-package.json",
                mime="application/json",
                key=f"dl_history_{index}",
            )


def main() -> None:
    st.set_page_config(
        page_title="Shorts Script Studio",
        page_icon="🎬",
        layout="wide",
    )

    _init_state()
    _inject_styles()

    try:
        app = _get_app()
    except ConfigError as exc:
        st.error(
            f"{exc} Add it to Streamlit Secrets or your local .env file, then reload the page."
        )
        st.stop()
    orchestrator = app["orchestrator"]

    st.title("Shorts Script Studio")
    st.markdown(
        f"<div class='status-card'>Status: {html.escape(st.session_state['sss_status_line'])}</div>",
        unsafe_allow_html=True,
    )

    tab_ideas, tab_trends, tab_script, tab_video, tab_history = st.tabs(
        ["Ideas", "Trends", "Script Studio", "Video", "History"]
    )

    with tab_ideas:
        _ideas_tab(orchestrator)

    with tab_trends:
        _trends_tab(orchestrator)

    with tab_script:
        _script_tab()

    with tab_video:
        _video_tab(orchestrator)

    with tab_history:
        _history_tab()


if __name__ == "__main__":
    main()
