"""Streamlit UI for live prompt-to-image generation.

Features:
- Images regenerate as the prompt changes (debounced)
- Generation history with thumbnail selection
- Settings with an explicit apply step
- Optional user-supplied Together API key
- Consistency mode
- Prompt template picker with category filter
- Download and copy-to-clipboard for the active image
"""

from __future__ import annotations

import base64
import binascii
import logging
import sys
import time
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components
from dotenv import load_dotenv

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.client import GenerateImageClient
from core.config import ClientConfig
from core.models import (
    ASPECT_RATIO_LABELS,
    DEFAULT_SETTINGS,
    MODEL_LABELS,
    QUALITY_LABELS,
    SETTING_RANGES,
)
from core.session import PromptSession
from prompts.templates import TEMPLATES, categories, filter_templates

load_dotenv()
config = ClientConfig.from_env()
logging.basicConfig(level=config.log_level)
logger = logging.getLogger(__name__)

# ============================================================================
# Page config and custom CSS
# ============================================================================

st.set_page_config(
    page_title="KeyStroke Imagen",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stTabs [data-baseweb="tab"] { font-weight: 600; }
    div[data-testid="stImage"] img { border-radius: 8px; }
</style>
""", unsafe_allow_html=True)

# ============================================================================
# Session state initialization
# ============================================================================

SETTING_WIDGET_KEYS = {
    "aspect_ratio": "setting_aspect_ratio",
    "quality": "setting_quality",
    "style_strength": "setting_style_strength",
    "model": "setting_model",
    "guidance_scale": "setting_guidance_scale",
    "steps": "setting_steps",
}


def init_session_state():
    if "session" not in st.session_state:
        client = GenerateImageClient(config.endpoint_url, timeout=config.fetch_timeout_s)
        st.session_state["session"] = PromptSession(fetcher=client)
    defaults = {
        "prompt_input": "",
        "show_templates": False,
        "template_category": "(all)",
        "copy_script": None,
        "user_api_key": "",
        "iterative_mode": False,
    }
    for key, val in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = val
    for name, widget_key in SETTING_WIDGET_KEYS.items():
        if widget_key not in st.session_state:
            st.session_state[widget_key] = getattr(DEFAULT_SETTINGS, name)


init_session_state()
session: PromptSession = st.session_state["session"]

# ============================================================================
# Callbacks
# ============================================================================


def on_template_selected(name: str):
    template = TEMPLATES[name]
    session.apply_template(template)
    st.session_state["prompt_input"] = session.prompt
    st.session_state["show_templates"] = False


def on_setting_changed(name: str):
    try:
        session.update_setting(name, st.session_state[SETTING_WIDGET_KEYS[name]])
    except ValueError as exc:
        session.notify("Invalid setting", str(exc), variant="destructive")


def on_apply_settings():
    session.apply_settings()


def on_reset_settings():
    session.reset_settings()
    for name, widget_key in SETTING_WIDGET_KEYS.items():
        st.session_state[widget_key] = getattr(DEFAULT_SETTINGS, name)


def on_clear_history():
    session.clear_history()


def on_copy():
    st.session_state["copy_script"] = session.copy_active()


def decode_thumbnail(b64_json: str) -> bytes | None:
    try:
        return base64.b64decode(b64_json, validate=True)
    except (binascii.Error, ValueError):
        return None


# ============================================================================
# Sidebar: API key and mode
# ============================================================================

with st.sidebar:
    st.markdown("### Configuration")

    api_key = st.text_input(
        "Together API Key",
        key="user_api_key",
        type="password",
        placeholder="API Key",
        help="Optional: add your own key from https://api.together.xyz/settings/api-keys "
             "to skip the shared daily limit.",
    )
    session.set_user_api_key(api_key)
    if api_key:
        st.caption("Using your own API key.")

    iterative_mode = st.toggle(
        "Consistency mode",
        key="iterative_mode",
        help="Use earlier images as references for consistency",
    )
    session.set_iterative_mode(iterative_mode)

    st.divider()
    st.markdown("##### Session")
    summary = session.analytics.get_summary()
    m1, m2 = st.columns(2)
    m1.metric("Images", summary["images"])
    m2.metric("Errors", summary["errors"])
    st.metric("Avg. inference", f"{summary['avg_inference_s']:.2f}s")

# ============================================================================
# Main area
# ============================================================================

st.title("KeyStroke Imagen")
st.caption("Generate stunning images in real-time as you type your prompt")

col_form, col_image = st.columns([2, 3])

with col_form:
    tab_prompt, tab_settings = st.tabs(["Prompt", "Settings"])

    # ------------------------------------------------------------------------
    # TAB: Prompt
    # ------------------------------------------------------------------------

    with tab_prompt:
        st.toggle("Show prompt templates", key="show_templates")

        if st.session_state["show_templates"]:
            st.selectbox(
                "Filter",
                options=["(all)"] + categories(),
                key="template_category",
                format_func=lambda c: c.title() if c != "(all)" else "All categories",
            )
            selected = st.session_state["template_category"]
            templates = filter_templates(None if selected == "(all)" else selected)
            tpl_cols = st.columns(3)
            for i, template in enumerate(templates):
                with tpl_cols[i % len(tpl_cols)]:
                    st.button(
                        template.name,
                        key=f"tpl_{template.name}",
                        icon=template.icon,
                        help=template.description,
                        on_click=on_template_selected,
                        args=(template.name,),
                        use_container_width=True,
                    )

        st.text_area(
            "Image Description",
            key="prompt_input",
            height=160,
            placeholder="Describe your image in detail...",
        )

        with st.expander("Tips for better results"):
            st.markdown(
                "- Be specific about what you want to see\n"
                "- Include details about style, lighting, and composition\n"
                "- Try different prompts to explore various results\n"
                "- Enable consistency mode to maintain style across generations"
            )

    # ------------------------------------------------------------------------
    # TAB: Settings
    # ------------------------------------------------------------------------

    with tab_settings:
        s1, s2 = st.columns(2)
        with s1:
            st.selectbox(
                "Aspect Ratio",
                options=list(ASPECT_RATIO_LABELS),
                format_func=ASPECT_RATIO_LABELS.get,
                key=SETTING_WIDGET_KEYS["aspect_ratio"],
                on_change=on_setting_changed,
                args=("aspect_ratio",),
            )
        with s2:
            st.selectbox(
                "Quality",
                options=list(QUALITY_LABELS),
                format_func=QUALITY_LABELS.get,
                key=SETTING_WIDGET_KEYS["quality"],
                on_change=on_setting_changed,
                args=("quality",),
            )

        low, high = SETTING_RANGES["style_strength"]
        st.slider(
            "Style Strength",
            low, high,
            key=SETTING_WIDGET_KEYS["style_strength"],
            on_change=on_setting_changed,
            args=("style_strength",),
        )

        st.selectbox(
            "Model",
            options=list(MODEL_LABELS),
            format_func=MODEL_LABELS.get,
            key=SETTING_WIDGET_KEYS["model"],
            on_change=on_setting_changed,
            args=("model",),
        )

        s3, s4 = st.columns(2)
        with s3:
            low, high = SETTING_RANGES["guidance_scale"]
            st.slider(
                "Guidance Scale",
                low, high,
                key=SETTING_WIDGET_KEYS["guidance_scale"],
                on_change=on_setting_changed,
                args=("guidance_scale",),
            )
        with s4:
            low, high = SETTING_RANGES["steps"]
            st.slider(
                "Steps",
                low, high,
                key=SETTING_WIDGET_KEYS["steps"],
                on_change=on_setting_changed,
                args=("steps",),
            )

        b1, b2 = st.columns(2)
        with b1:
            st.button("Reset", on_click=on_reset_settings, use_container_width=True)
        with b2:
            st.button(
                "Apply Settings",
                type="primary",
                disabled=not session.settings_changed,
                on_click=on_apply_settings,
                use_container_width=True,
            )

# ============================================================================
# Debounce and fetch
# ============================================================================

session.set_prompt(st.session_state["prompt_input"])

if session.is_debouncing:
    time.sleep(session.debounce_remaining())

if session.needs_fetch:
    with col_image, st.spinner("Generating image..."):
        query = session.sync()
else:
    query = session.sync()

with col_form:
    if query.is_error:
        st.error(query.error, icon=":material/error:")
    active = session.active_image
    if active is not None:
        st.badge(f"Generated in {active.inference_s:.2f}s", icon=":material/timer:")

# ============================================================================
# Image display and history
# ============================================================================

with col_image:
    active_generation = session.active_generation

    if active_generation is None or not session.prompt:
        st.info(
            "**Start typing to generate images.** Your images will appear here as you "
            "type. The more detailed your description, the better the results."
        )
    else:
        image_bytes = decode_thumbnail(active_generation.image.b64_json)
        if image_bytes is not None:
            st.image(image_bytes, caption=active_generation.prompt, use_container_width=True)
        else:
            st.warning("The active image could not be displayed.")

        a1, a2, _ = st.columns([1, 1, 3])
        with a1:
            download = session.prepare_download()
            if download is not None:
                file_name, data = download
                st.download_button(
                    "Download",
                    data=data,
                    file_name=file_name,
                    mime="image/png",
                    icon=":material/download:",
                    on_click=session.confirm_download,
                    use_container_width=True,
                )
        with a2:
            st.button("Copy", icon=":material/content_copy:", on_click=on_copy, use_container_width=True)

        if st.session_state["copy_script"]:
            components.html(st.session_state["copy_script"], height=30)
            st.session_state["copy_script"] = None

    if session.generations:
        st.divider()
        h1, h2 = st.columns([3, 1])
        with h1:
            st.markdown(f"**History ({len(session.generations)})**")
        with h2:
            if len(session.generations) > 1:
                st.button("Clear All", on_click=on_clear_history, use_container_width=True)

        per_row = 6
        for row_start in range(0, len(session.generations), per_row):
            row = session.generations[row_start:row_start + per_row]
            thumb_cols = st.columns(per_row)
            for offset, generation in enumerate(row):
                index = row_start + offset
                with thumb_cols[offset]:
                    thumb = decode_thumbnail(generation.image.b64_json)
                    if thumb is not None:
                        st.image(thumb, use_container_width=True)
                    st.button(
                        "Active" if index == session.active_index else f"#{index + 1}",
                        key=f"history_{index}",
                        type="primary" if index == session.active_index else "secondary",
                        on_click=session.select_generation,
                        args=(index,),
                        help=generation.prompt,
                        use_container_width=True,
                    )

# ============================================================================
# Notifications
# ============================================================================

for note in session.drain_notifications():
    st.toast(
        f"**{note.title}**  \n{note.description}" if note.description else f"**{note.title}**",
        icon=":material/error:" if note.is_destructive else ":material/check_circle:",
    )
