# pages/1_Job_History.py
import pandas as pd
import streamlit as st

from job_service import list_jobs
from ui_common import dt, job_store, render_connection_sidebar, usd

render_connection_sidebar()

st.title("Job History")
st.caption("Every quote saved to the jobs table, newest first.")

top = st.columns([1, 1, 2])
with top[0]:
    if st.button("➕ New Quote"):
        st.switch_page("app.py")
with top[1]:
    limit = st.number_input("Max rows", min_value=1, max_value=500, value=50, step=10)

with st.spinner("Loading jobs..."):
    jobs, error = list_jobs(job_store(), limit=int(limit))

if error:
    st.warning(f"Could not load jobs from the database: {error}")

if not jobs:
    st.info("No jobs found yet.")
    st.stop()

rows = [
    {
        "Part": j.part_type,
        "Material": j.material,
        "Qty": j.quantity,
        "Complexity": j.complexity,
        "Deadline": j.deadline.isoformat() if j.deadline else "",
        "Quote": usd(j.quote),
        "Margin %": j.margin_percentage,
        "Rush Fee": usd(j.rush_fee_amount) if j.rush_fee_enabled else "",
        "Created": dt(j.created_at),
    }
    for j in jobs
]

st.subheader(f"Jobs ({len(rows)})")
st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
