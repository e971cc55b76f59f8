import json

import streamlit as st

from csvdialect import Complete, CsvImportError, DialectImporter
from csvdialect.ingestion.sources import guess_decode, is_valid_row, read_rows

EXAMPLE_OPTIONS = {
    "dialects": {
        "standard": {
            "column_map": {
                "First Name": None,
                "Other Name": "Middle Name",
                "Last Name": None,
                "Email": None,
            },
            "language_map": {
                "First Name": ["Prénom", "Given Name"],
                "Last Name": ["Nom", "Family Name", "Surname"],
                "Email": ["E-mail", "Courriel"],
            },
        },
    },
}

LEAVE_UNMATCHED = "(leave unmatched)"

# Page config
st.set_page_config(
    page_title="CSV Dialect Importer",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    :root {
        --primary-color: #1e3a8a;
        --accent-color: #10b981;
        --text-light: #6b7280;
        --border-color: #e5e7eb;
    }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}

    h1 {
        color: var(--primary-color);
        font-weight: 700;
        letter-spacing: -0.02em;
    }

    .subtitle {
        color: var(--text-light);
        font-size: 1.1rem;
        margin-bottom: 2rem;
        padding-bottom: 1.5rem;
        border-bottom: 2px solid var(--border-color);
    }

    [data-testid="stMetricValue"] {
        font-weight: 700;
        color: var(--primary-color);
    }

    .stDownloadButton > button {
        background-color: var(--accent-color);
        color: white;
        border: none;
        border-radius: 0.5rem;
        font-weight: 600;
    }

    .stTextArea textarea {
        font-family: 'Monaco', 'Menlo', monospace;
        font-size: 0.875rem;
    }
</style>
""", unsafe_allow_html=True)


def load_importer(options_text):
    """Parse the options JSON and build an importer. Errors are shown, then the run stops."""
    try:
        options = json.loads(options_text)
    except json.JSONDecodeError as e:
        st.error(f"❌ Options are not valid JSON: {e}")
        st.stop()
    try:
        return DialectImporter.from_options(options)
    except CsvImportError as e:
        st.error(f"❌ {e.reason}")
        st.stop()


def show_complete(outcome, file_name):
    st.success(f"✅ Import complete: **{len(outcome.row_objects)} records**")
    col1, col2 = st.columns(2)
    with col1:
        st.metric("Records", f"{len(outcome.row_objects):,}")
    with col2:
        st.metric("With Unknowns", sum(1 for record in outcome.row_objects if "unknowns" in record))

    if outcome.row_objects:
        st.dataframe(outcome.to_frame(), use_container_width=True)

    stem = file_name.rsplit(".", 1)[0]
    st.download_button(
        label="📥 Download Records (JSON)",
        data=json.dumps(outcome.row_objects, ensure_ascii=False, indent=2, default=str),
        file_name=f"{stem}_records.json",
        mime="application/json",
        use_container_width=True
    )


def resolve_columns(importer, outcome, file_name, force_import):
    """Show the unresolved columns and let the operator map them to dialect keys."""
    columns = outcome.columns
    st.warning(f"⚠️ {len(columns.unmatched)} column(s) with data were not recognised")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Dialect", columns.dialect_name or "—")
    with col2:
        st.metric("Rows", f"{len(outcome.rows):,}")
    with col3:
        st.metric("Unmatched", len(columns.unmatched))

    if columns.missing:
        st.info("Recognised but empty: " + ", ".join(columns.missing))

    st.dataframe(outcome.to_frame(), use_container_width=True)

    st.markdown("### Resolve Columns")
    keys = list(importer.registry.get(columns.dialect_name).column_map)
    assignments = {}
    for position, original in enumerate(columns.unmatched):
        label = original if original else f"Unnamed column {position + 1}"
        choice = st.selectbox(label, [LEAVE_UNMATCHED] + keys, key=f"resolve_{position}")
        if choice != LEAVE_UNMATCHED:
            assignments[position] = choice

    if st.button("🔁 Re-import", type="primary", use_container_width=True):
        retried = importer.import_from_rows(
            outcome.rebuild_header(assignments),
            outcome.rows,
            force_import=force_import,
            dialect=columns.dialect_name,
        )
        if isinstance(retried, Complete):
            show_complete(retried, file_name)
        else:
            st.error(
                "❌ Still unresolved: "
                + ", ".join(str(name) for name in retried.columns.unmatched)
                + ". Map the remaining columns or enable Force import."
            )


# Header
st.markdown("# 🧾 CSV Dialect Importer")
st.markdown('<div class="subtitle">Match loosely structured CSV headers to known column dialects</div>', unsafe_allow_html=True)

# Sidebar
with st.sidebar:
    st.markdown("## Dialects")
    options_file = st.file_uploader("Options file (JSON)", type=["json"])
    if options_file is not None:
        options_text = options_file.getvalue().decode("utf-8")
    else:
        options_text = st.text_area(
            "Options",
            value=json.dumps(EXAMPLE_OPTIONS, ensure_ascii=False, indent=2),
            height=360,
            help="column_map values: null copies the value, a string renames the column"
        )

    st.markdown("---")
    force_import = st.checkbox(
        "Force import",
        help="Accept unmatched columns; their values are kept under 'unknowns'"
    )

importer = load_importer(options_text)

st.markdown("## Upload Your CSV")
uploaded_file = st.file_uploader(
    "Choose a file",
    type=["csv", "txt"],
    label_visibility="collapsed"
)

if uploaded_file is not None:
    try:
        rows = [row if is_valid_row(row) else [] for row in read_rows(guess_decode(uploaded_file.getvalue()))]
        header, data_rows = (rows[0], rows[1:]) if rows else ([], [])

        with st.expander("📋 Preview Header", expanded=False):
            st.write(header)

        outcome = importer.import_from_rows(header, data_rows, force_import=force_import)

        if isinstance(outcome, Complete):
            show_complete(outcome, uploaded_file.name)
        else:
            resolve_columns(importer, outcome, uploaded_file.name, force_import)

    except Exception as e:
        st.error(f"❌ Error processing file: {str(e)}")
        with st.expander("See error details"):
            st.exception(e)

else:
    st.info("👆 Configure dialects in the sidebar and upload a CSV file to get started")
