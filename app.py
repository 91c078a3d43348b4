import logging
import os

import streamlit as st

from moyenne.backend_logic import MarkEntry, build_render_model
from moyenne.catalog import DEFAULT_SCALE, DEFAULT_TD_WEIGHT, MODULES
from moyenne.io_csv import import_marks_csv, marks_to_frame
from moyenne.store import MARK_KINDS, StateStore, update_mark

logging.basicConfig(level=os.environ.get("MOYENNE_LOG_LEVEL", "WARNING").upper())
logger = logging.getLogger("moyenne.app")

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title="Moyenne Calculator | Weighted TD & Exam Average",
    page_icon="🧮",
    layout="wide",
)

st.markdown(
    """
    <style>
    .module-title { font-weight: 600; }
    .module-sub { color: #888888; font-size: 12px; min-height: 1em; }

    .coef-pill {
        display: inline-block;
        padding: 2px 10px;
        border-radius: 999px;
        background: rgba(120, 120, 255, 0.15);
        font-weight: 700;
    }

    .computed { font-weight: 700; }
    .computed.missing { color: #888888; font-weight: 400; }
    .computed.bad { color: #d9534f; }
    </style>
    """,
    unsafe_allow_html=True
)

store = StateStore.for_key()


def input_key(kind: str, module_id: str) -> str:
    return f"{kind}:{module_id}"


def on_mark_change(module_id: str, kind: str):
    raw = st.session_state[input_key(kind, module_id)]
    store.save(update_mark(store.load(), module_id, kind, raw))


def ask_reset():
    st.session_state["confirm_reset"] = True


def cancel_reset():
    st.session_state["confirm_reset"] = False


def confirm_reset():
    store.clear()
    for mod in MODULES:
        for kind in MARK_KINDS:
            st.session_state.pop(input_key(kind, mod.id), None)
    st.session_state["confirm_reset"] = False
    logger.info("Marks reset by user")


def apply_import():
    uploaded = st.session_state.get("marks_csv")
    st.session_state["import_error"] = None
    if uploaded is None:
        return
    uploaded.seek(0)
    try:
        state, updates = import_marks_csv(uploaded, store.load(), MODULES)
    except ValueError as e:
        st.session_state["import_error"] = str(e)
        return

    store.save(state)
    for module_id, fields in updates.items():
        for kind, raw in fields.items():
            st.session_state[input_key(kind, module_id)] = raw


st.title("🧮 Moyenne Calculator")
st.write(
    f"Enter your TD and exam marks (out of {DEFAULT_SCALE}) for each module. "
    f"When both are present the module mark is {DEFAULT_TD_WEIGHT}% TD and "
    f"{100 - DEFAULT_TD_WEIGHT}% exam; otherwise the one you entered is used. "
    "Your marks are saved on this computer as you type."
)

# ---- Seed inputs from the persisted slot ----
state = store.load()
for mod in MODULES:
    entry = state.get(mod.id, MarkEntry())
    for kind in MARK_KINDS:
        key = input_key(kind, mod.id)
        if key not in st.session_state:
            st.session_state[key] = getattr(entry, kind)

model = build_render_model(state, MODULES, DEFAULT_TD_WEIGHT, DEFAULT_SCALE)

# ------------------------
# Modules table
# ------------------------

COLUMN_WIDTHS = [4, 1, 2, 2, 2]

header = st.columns(COLUMN_WIDTHS)
for col, title in zip(header, ["**Module**", "**Coef.**", "**TD**", "**Exam**", "**Mark**"]):
    col.markdown(title)

for row in model.rows:
    mod = row.module
    c_name, c_coef, c_td, c_exam, c_mark = st.columns(COLUMN_WIDTHS)
    with c_name:
        st.markdown(
            f'<div class="module-title">{mod.name}</div>'
            f'<div class="module-sub">{mod.short or "&nbsp;"}</div>',
            unsafe_allow_html=True,
        )
    with c_coef:
        st.markdown(f'<span class="coef-pill">{mod.coef}</span>', unsafe_allow_html=True)
    for col, kind in ((c_td, "td"), (c_exam, "exam")):
        with col:
            st.text_input(
                f"{kind.upper()} {mod.name}",
                key=input_key(kind, mod.id),
                placeholder="—",
                label_visibility="collapsed",
                on_change=on_mark_change,
                args=(mod.id, kind),
            )
    with c_mark:
        css = "computed" if row.status == "ok" else f"computed {row.status}"
        st.markdown(f'<span class="{css}">{row.text}</span>', unsafe_allow_html=True)

# ------------------------
# Overall average
# ------------------------

st.markdown("---")
col1, col2 = st.columns(2)
with col1:
    st.metric("Overall average", model.average_text)
    st.caption(model.average_meta)
with col2:
    st.metric("Coefficients counted", str(model.average.coefficient_sum))

# ------------------------
# Import / export / reset
# ------------------------

st.markdown("---")
exp_col, imp_col, reset_col = st.columns(3)

with exp_col:
    st.download_button(
        "Download marks (CSV)",
        data=marks_to_frame(MODULES, state, DEFAULT_TD_WEIGHT, DEFAULT_SCALE).to_csv(index=False).encode("utf-8"),
        file_name="marks.csv",
        mime="text/csv",
    )

with imp_col:
    st.file_uploader("Import marks CSV (Module, TD, Exam)", type=["csv"], key="marks_csv")
    st.button("Apply import", key="apply_import", on_click=apply_import)
    if st.session_state.get("import_error"):
        st.error(f"CSV error: {st.session_state['import_error']}")

with reset_col:
    if st.session_state.get("confirm_reset"):
        st.warning("Reset all marks and settings?")
        yes, no = st.columns(2)
        yes.button("Yes, reset", key="reset_confirm", type="primary", on_click=confirm_reset)
        no.button("Cancel", key="reset_cancel", on_click=cancel_reset)
    else:
        st.button("Reset", key="reset", on_click=ask_reset)


st.header("FAQ")

st.subheader("How is a module mark computed?")
st.write(
    f"With both marks: (TD × {DEFAULT_TD_WEIGHT} + Exam × {100 - DEFAULT_TD_WEIGHT}) / 100. "
    "With only one of them, that mark is the module mark. Values outside "
    f"0–{DEFAULT_SCALE} are ignored, and a computed mark outside the scale is shown in red "
    "and left out of the average."
)

st.subheader("How is the overall average computed?")
st.write(
    "Each module mark is multiplied by its coefficient, and the sum is divided by the total "
    "coefficient of the modules that have a mark. Empty modules do not count as zero."
)

st.subheader("Where is my data stored?")
st.write(
    f"In a single file on this computer ({store.path}). Nothing is sent anywhere. "
    "**Reset** deletes that file."
)
