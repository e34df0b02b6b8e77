# study_planner/ui/components/sound.py
import streamlit as st

from study_planner.core.config import FINISH_SOUND_URL

SOUND_KEY = "sound_on"


def sound_toggle(label: str = "🔊 Sound") -> bool:
    return st.toggle(label, value=st.session_state.get(SOUND_KEY, True), key=SOUND_KEY,
                     help="Play a sound when a session is completed.")


def play_finish_sound(url: str = FINISH_SOUND_URL):
    """Queue a one-shot chime; honours the sidebar/session toggle."""
    if not st.session_state.get(SOUND_KEY, True):
        return
    kind = "audio/ogg" if url.endswith(".ogg") else "audio/mpeg"
    st.markdown(f'<audio autoplay><source src="{url}" type="{kind}"></audio>', unsafe_allow_html=True)
