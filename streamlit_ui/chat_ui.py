import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import streamlit as st
from requests.exceptions import RequestException

try:
    from core.settings import SETTINGS
except ModuleNotFoundError:
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))
    from core.settings import SETTINGS


st.set_page_config(page_title="Chat", layout="centered")
st.title("Chat")

API_BASE_URL = SETTINGS.UI.API_BASE_URL
CHATS_URL = f"{API_BASE_URL}/api/v1/chats"
HEADERS = {"X-User-Id": str(SETTINGS.UI.UI_USER_ID)}
TIMEOUT = SETTINGS.COMPLETION.COMPLETION_TIMEOUT_SECONDS + 10

if "chat_id" not in st.session_state:
    st.session_state.chat_id = None
if "messages" not in st.session_state:
    st.session_state.messages = []
if "awaiting_reply" not in st.session_state:
    st.session_state.awaiting_reply = False


def _call(method: str, url: str, **kwargs) -> Optional[Dict[str, Any]]:
    """Call the API and return the envelope's data, showing errors inline."""
    try:
        resp = requests.request(method, url, headers=HEADERS, timeout=TIMEOUT, **kwargs)
    except RequestException as e:
        st.error(f"API unreachable at {url}: {e}")
        return None
    body = resp.json() if resp.content else {}
    if resp.ok:
        return body.get("data")
    details = body.get("details") or {}
    if details.get("user_message_saved"):
        st.warning("Your message was saved but no reply was generated. Use 'Retry reply'.")
        load_chat(st.session_state.chat_id or details.get("session_id"))
    else:
        st.error(body.get("message") or body.get("detail") or f"HTTP {resp.status_code}")
    return None


def _show(conversation: Dict[str, Any]) -> None:
    st.session_state.chat_id = conversation["chat"]["id"]
    st.session_state.messages = [
        {"role": m["role"], "content": m["content"]} for m in conversation["messages"]
    ]
    st.session_state.awaiting_reply = conversation.get("awaiting_reply", False)


def list_chats() -> List[Dict[str, Any]]:
    data = _call("GET", f"{CHATS_URL}/")
    return data.get("items", []) if data else []


def load_chat(chat_id: Optional[str]) -> None:
    if not chat_id:
        return
    data = _call("GET", f"{CHATS_URL}/{chat_id}")
    if data:
        _show(data)


def send(text: str) -> None:
    if st.session_state.chat_id is None:
        data = _call("POST", f"{CHATS_URL}/", json={"initial_message": text})
    else:
        data = _call(
            "POST",
            f"{CHATS_URL}/{st.session_state.chat_id}/messages",
            json={"message": text},
        )
    if data:
        _show(data)


def retry() -> None:
    data = _call("POST", f"{CHATS_URL}/{st.session_state.chat_id}/retry")
    if data:
        _show(data)


with st.sidebar:
    st.subheader("Chats")
    if st.button("New Chat"):
        st.session_state.chat_id = None
        st.session_state.messages = []
        st.session_state.awaiting_reply = False
    for chat in list_chats():
        if st.button(chat["title"], key=chat["id"]):
            load_chat(chat["id"])
    st.caption(f"API_BASE_URL = {API_BASE_URL}")

for message in st.session_state.messages:
    with st.chat_message(message["role"]):
        st.markdown(message["content"])

if st.session_state.awaiting_reply and st.button("Retry reply"):
    with st.spinner("Generating..."):
        retry()
    st.rerun()

if prompt := st.chat_input("Type your message"):
    with st.chat_message("user"):
        st.markdown(prompt)
    with st.spinner("Generating..."):
        send(prompt)
    st.rerun()
