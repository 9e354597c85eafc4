# pages/2_Pricing_Settings.py
from dataclasses import replace

import streamlit as st

from ui_common import config_store, pricing_config, render_connection_sidebar, set_pricing_config

render_connection_sidebar()

st.title("Pricing Settings")
st.caption("Saved on this machine and applied to every new quote.")

config = pricing_config()

flash = st.session_state.pop("settings_flash", None)
if flash:
    st.success(flash)

if config.is_customized():
    st.info("Material prices are customized.")

# ----------------------------
# Material prices
# ----------------------------
st.subheader("Material Prices ($ per unit)")

with st.form("material_prices"):
    prices = {}
    for material, price in config.material_prices.items():
        prices[material] = st.number_input(
            material.title(), min_value=0.0, value=float(price), step=0.5, key=f"price_{material}"
        )

    c1, c2 = st.columns(2)
    with c1:
        save_prices = st.form_submit_button("Save Prices", type="primary")
    with c2:
        reset_prices = st.form_submit_button("Reset to Defaults")

if save_prices:
    set_pricing_config(replace(config, material_prices=prices))
    st.session_state.settings_flash = "Material prices saved."
    st.rerun()

if reset_prices:
    st.session_state.pricing_config = config_store().reset_material_prices()
    # drop widget state so the inputs show the defaults again
    for material in prices:
        st.session_state.pop(f"price_{material}", None)
    st.session_state.settings_flash = "Material prices reset."
    st.rerun()

st.divider()

# ----------------------------
# Advanced options
# ----------------------------
st.subheader("Advanced Options")

with st.form("advanced_options"):
    margin = st.slider("Margin (%)", min_value=0, max_value=100, value=int(config.margin_percentage))
    rush_enabled = st.checkbox("Rush fee", value=config.rush_fee_enabled)
    rush_amount = st.number_input(
        "Rush fee amount ($)", min_value=0.0, value=float(config.rush_fee_amount), step=5.0
    )
    save_options = st.form_submit_button("Save Options", type="primary")

if save_options:
    set_pricing_config(
        replace(
            config,
            margin_percentage=int(margin),
            rush_fee_enabled=bool(rush_enabled),
            rush_fee_amount=float(rush_amount),
        )
    )
    st.session_state.settings_flash = "Advanced options saved."
    st.rerun()
