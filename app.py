# app.py
import streamlit as st

import pricing_config as cfg
import settings
from ai_quote import suggest_quote
from errors import ValidationError
from job_service import submit_quote
from pricing_engine import parse_quote_form
from ui_common import job_store, pricing_config, render_connection_sidebar, usd

st.set_page_config(page_title="Fabrication Quote", layout="centered")

render_connection_sidebar()

st.title("Fabrication Quote")
st.caption("Describe the part → get a price → saved to job history")

config = pricing_config()
store = job_store()

if "field_errors" not in st.session_state:
    st.session_state.field_errors = {}

errors = st.session_state.field_errors


def _field_error(name: str) -> None:
    if name in errors:
        st.error(errors[name])


# ----------------------------
# Form
# ----------------------------
with st.form("quote_form"):
    part_type = st.text_input("Part Type", placeholder="e.g. Mounting bracket")
    _field_error("part_type")

    materials = list(config.material_prices.keys())
    default_material = materials.index("steel") if "steel" in materials else 0
    material = st.selectbox("Material", options=materials, index=default_material)
    _field_error("material")

    quantity = st.text_input("Quantity", placeholder="e.g. 10")
    _field_error("quantity")

    complexity = st.selectbox(
        "Complexity",
        options=cfg.COMPLEXITY_LEVELS,
        index=cfg.COMPLEXITY_LEVELS.index(cfg.DEFAULT_COMPLEXITY),
        format_func=str.title,
    )

    deadline = st.date_input("Deadline (optional)", value=None)

    c1, c2 = st.columns(2)
    with c1:
        calculate = st.form_submit_button("Calculate Quote", type="primary")
    with c2:
        ask_ai = st.form_submit_button("Get AI Suggestion")

form = {
    "part_type": part_type,
    "material": material,
    "quantity": quantity,
    "complexity": complexity,
    "deadline": deadline,
}

# ----------------------------
# Calculate + save
# ----------------------------
if calculate:
    try:
        with st.spinner("Calculating quote..."):
            sub = submit_quote(form, config, store)
        st.session_state.field_errors = {}
        st.session_state.last_submission = sub
        st.session_state.demo_mode = sub.demo_mode
    except ValidationError as e:
        st.session_state.field_errors = e.errors
        st.session_state.pop("last_submission", None)
    st.rerun()

if ask_ai:
    try:
        inputs = parse_quote_form(form)
    except ValidationError as e:
        st.session_state.field_errors = e.errors
        st.session_state.ai_result = None
        st.session_state.ai_form_error = (
            "Please fill in all required fields correctly before getting an AI suggestion."
        )
    else:
        st.session_state.field_errors = {}
        st.session_state.ai_form_error = None
        with st.spinner("Asking the AI for a suggestion..."):
            st.session_state.ai_result = suggest_quote(inputs, config, store)
    st.rerun()

if errors:
    st.error("Please fill in all required fields correctly.")

# ----------------------------
# Result
# ----------------------------
sub = st.session_state.get("last_submission")
if sub is not None:
    st.divider()
    st.subheader("Quote")
    st.metric("Estimated Price", usd(sub.quote))

    if sub.status == "success":
        st.success(sub.message)
    elif sub.status == "warning":
        st.warning(sub.message)
    else:
        st.error(sub.message)

    with st.expander("How this price was calculated"):
        b = sub.breakdown
        st.write(f"Base price ({b['material']}): {usd(b['base_price'])}")
        st.write(f"Complexity: {b['complexity']} (x{b['complexity_multiplier']:.2f})")
        st.write(f"Quantity: {b['quantity']} (x{b['quantity_multiplier']:.2f} volume factor)")
        st.write(f"Market variance: x{b['random_factor']:.2f}")
        st.write(f"Margin: {b['margin_percentage']}% (x{b['margin_multiplier']:.2f})")
        if b["rush_fee_enabled"]:
            st.write(f"Rush fee: {usd(b['rush_fee_amount'])}")
        st.write(f"Base cost: {usd(b['base_cost'])}")
        st.write(f"**Final quote: {usd(b['final_quote'])}**")

ai_form_error = st.session_state.get("ai_form_error")
ai = st.session_state.get("ai_result")
if ai_form_error or ai is not None:
    st.divider()
    st.subheader("AI Suggestion")
    if ai_form_error:
        st.error(ai_form_error)
    if ai is not None:
        if ai.error:
            st.warning(ai.error)
        st.metric("Suggested Price", ai.suggestion or "")
        st.caption(f"Compared against {len(ai.similar_jobs)} similar past job(s).")

# ----------------------------
# Demo mode: quotes saved on this machine
# ----------------------------
if st.session_state.get("demo_mode"):
    st.divider()
    st.info(
        "Demo mode: the database is unavailable or rejected the write, "
        "so quotes are stored locally on this machine."
    )
    saved = store.load_local(settings.JOBS_TABLE)
    with st.expander(f"Saved quotes ({len(saved)})"):
        if not saved:
            st.write("No saved quotes yet")
        for job in reversed(saved):
            st.write(
                f"**{job.get('part_type')}** · {job.get('material')} · "
                f"qty {job.get('quantity')} · {job.get('complexity')} complexity → "
                f"{usd(job.get('quote'))}"
            )
