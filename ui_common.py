# ui_common.py
from datetime import datetime

import streamlit as st

import settings
from config_store import ConfigStore
from job_store import JobStore, create_supabase_client
from local_storage import LocalStorage
from logging_config import setup_logging
from pricing_engine import PricingConfig


@st.cache_resource
def _init_logging() -> bool:
    setup_logging(log_level=settings.LOG_LEVEL, enable_file_logging=settings.LOG_TO_FILE)
    return True


@st.cache_resource
def _supabase():
    return create_supabase_client()


@st.cache_resource
def _storage() -> LocalStorage:
    return LocalStorage()


def job_store() -> JobStore:
    _init_logging()
    return JobStore(client=_supabase(), storage=_storage())


def config_store() -> ConfigStore:
    _init_logging()
    return ConfigStore(_storage())


def pricing_config() -> PricingConfig:
    # Read once per session; the settings page writes through config_store()
    if "pricing_config" not in st.session_state:
        st.session_state.pricing_config = config_store().load()
    return st.session_state.pricing_config


def set_pricing_config(config: PricingConfig) -> None:
    config_store().save(config)
    st.session_state.pricing_config = config


def usd(x) -> str:
    try:
        if x is None:
            return ""
        return f"${float(x):,.2f}"
    except (TypeError, ValueError):
        return str(x)


def dt(x) -> str:
    try:
        if not x:
            return ""
        return datetime.fromisoformat(str(x).replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return str(x)


def render_connection_sidebar() -> None:
    with st.sidebar:
        st.subheader("Connection")
        # It's safe to show SUPABASE_URL (not the key)
        st.caption("Supabase URL:")
        st.code(settings.SUPABASE_URL or "(missing)")
        st.caption("Local storage:")
        st.code(settings.LOCAL_STORAGE_DIR)
        if st.session_state.get("demo_mode"):
            st.warning("Demo mode: quotes are being saved on this machine only.")
