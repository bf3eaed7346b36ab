"""
Clinical Decision Support System: ICU Readmission Risk Assessment
=================================================================

A Streamlit dashboard for ICU teams to:
1. Enter a patient at discharge and receive a readmission risk score
2. See the key factors, vital sign review and follow-up recommendations
3. Screen a whole census from a CSV upload
"""

import streamlit as st

from icu_readmit.charts import (
    LABEL_STYLES,
    create_factor_chart,
    create_gauge_chart,
    create_label_pie,
    create_risk_histogram,
)
from icu_readmit.data_loader import (
    SAMPLE_PATIENTS,
    decode_csv_bytes,
    get_csv_template,
    get_sample_patient,
    parse_patient_csv,
)
from icu_readmit.population import analyze_population, population_insights
from icu_readmit.prediction import OUTCOME_THRESHOLDS, RiskScorer, assessments_to_dataframe
from icu_readmit.preprocessing import validate_fields
from icu_readmit.records import (
    COMORBIDITY_LABELS,
    DIAGNOSIS_LABELS,
    INTERVENTION_LABELS,
    OutcomeLabel,
    RiskAssessment,
    SourceKind,
    VitalStatus,
)
from icu_readmit.schema import CANONICAL_TO_FORM, FIELDS_BY_NAME, candidate_keys, display_name
from icu_readmit.storage import InMemoryHistoryStore

# =============================================================================
# PAGE CONFIGURATION
# =============================================================================

st.set_page_config(
    page_title="ICU Readmission Risk Assessment",
    page_icon="🏥",
    layout="wide",
    initial_sidebar_state="expanded"
)

# =============================================================================
# CONSTANTS
# =============================================================================

GENDERS = ["male", "female", "other"]

VITAL_INPUTS = [
    # (form name, label, min, max)
    ('heartRate', "Heart Rate (bpm)", 0.0, 300.0),
    ('bloodPressureSystolic', "Systolic BP (mmHg)", 0.0, 300.0),
    ('bloodPressureDiastolic', "Diastolic BP (mmHg)", 0.0, 200.0),
    ('respiratoryRate', "Respiratory Rate (/min)", 0.0, 80.0),
    ('temperature', "Temperature (°C)", 25.0, 45.0),
    ('oxygenSaturation', "Oxygen Saturation (%)", 0.0, 100.0),
]

VITAL_STATUS_ICONS = {
    VitalStatus.NORMAL: "🟢",
    VitalStatus.WARNING: "🟡",
    VitalStatus.CRITICAL: "🔴",
}


# =============================================================================
# SESSION STATE
# =============================================================================

def get_scorer() -> RiskScorer:
    """One scorer (and assessment history) per browser session."""
    if 'scorer' not in st.session_state:
        st.session_state['scorer'] = RiskScorer(history_store=InMemoryHistoryStore())
    return st.session_state['scorer']


def get_form_defaults() -> dict:
    return st.session_state.get('form_defaults', {})


def _default_float(defaults: dict, key: str):
    value = defaults.get(key)
    return float(value) if value not in (None, '') else None


def _default_flag(defaults: dict, canonical: str) -> bool:
    """Checkbox default for a flag stored under any of its field names."""
    for key in candidate_keys(FIELDS_BY_NAME[canonical], prefer_csv=False):
        if key in defaults:
            return bool(defaults[key])
    return False


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def render_label_badge(assessment: RiskAssessment):
    style = LABEL_STYLES[assessment.outcome_label]
    st.markdown(f"""
    <div style="background-color: {style['color']};
                padding: 20px; border-radius: 10px;
                text-align: center; margin-bottom: 20px;">
        <h2 style="color: white; margin: 0;">{assessment.outcome_label.display}</h2>
        <p style="color: white; font-size: 24px; margin: 10px 0;">
            {assessment.risk_percentage} Readmission Risk
        </p>
        <p style="color: white; margin: 0;">Confidence: {assessment.confidence}%</p>
    </div>
    """, unsafe_allow_html=True)


def render_assessment(assessment: RiskAssessment):
    col1, col2 = st.columns([1, 1])

    with col1:
        st.plotly_chart(create_gauge_chart(assessment), use_container_width=True)

    with col2:
        render_label_badge(assessment)

        st.markdown("**Comorbidities:**")
        if assessment.comorbidity_list:
            st.markdown(", ".join(assessment.comorbidity_list))
        else:
            st.markdown("None recorded")

    st.markdown("---")
    st.subheader("🔬 Key Risk Factors")
    st.plotly_chart(create_factor_chart(assessment), use_container_width=True)

    if assessment.vitals_view:
        st.markdown("---")
        st.subheader("🩺 Vital Signs")
        cols = st.columns(len(assessment.vitals_view))
        for col, vital in zip(cols, assessment.vitals_view):
            col.metric(
                label=f"{VITAL_STATUS_ICONS[vital.status]} {vital.name}",
                value=f"{vital.value} {vital.unit}"
            )
            col.caption(vital.status.value.title())

    st.markdown("---")
    st.subheader("📋 Clinical Recommendations")
    for rec in assessment.recommendations:
        st.markdown(f"**{rec.title}**: {rec.description}")


# =============================================================================
# MAIN DASHBOARD
# =============================================================================

def main():
    """Main dashboard function."""

    scorer = get_scorer()

    # ==========================================================================
    # HEADER
    # ==========================================================================

    st.title("🏥 ICU Readmission Risk Assessment")
    st.markdown("""
    **Clinical Decision Support System** for estimating the risk that an ICU patient
    is readmitted after discharge.

    Scores combine age, length of stay, comorbidities and ICU interventions into a
    0-95 risk score with Low, Moderate and High risk labels.
    """)

    # ==========================================================================
    # SIDEBAR: SAMPLE PATIENTS
    # ==========================================================================

    st.sidebar.header("👥 Sample Patients")
    sample_names = {s['name']: s['id'] for s in SAMPLE_PATIENTS}
    chosen = st.sidebar.selectbox("Load a sample", ["(none)"] + list(sample_names))
    if st.sidebar.button("Load Sample", use_container_width=True) and chosen != "(none)":
        st.session_state['form_defaults'] = get_sample_patient(sample_names[chosen])
        st.rerun()

    defaults = get_form_defaults()

    # ==========================================================================
    # SIDEBAR: PATIENT INPUT FORM
    # ==========================================================================

    st.sidebar.header("📋 Patient Information")

    with st.sidebar.form("patient_form"):
        st.subheader("Demographics")

        patient_id = st.text_input("Patient ID (optional)", value=defaults.get('id', ''))

        col1, col2 = st.columns(2)
        with col1:
            age = st.text_input("Age (years)", value=str(defaults.get('age', '')))
        with col2:
            gender_default = defaults.get('gender', 'male')
            gender = st.selectbox(
                "Gender", GENDERS,
                index=GENDERS.index(gender_default) if gender_default in GENDERS else 0
            )

        col1, col2 = st.columns(2)
        with col1:
            height = st.number_input("Height (cm)", min_value=0.0, max_value=250.0,
                                     value=_default_float(defaults, 'height'))
        with col2:
            weight = st.number_input("Weight (kg)", min_value=0.0, max_value=400.0,
                                     value=_default_float(defaults, 'weight'))

        st.subheader("ICU Stay")

        length_of_stay = st.text_input(
            "Length of Stay (days)", value=str(defaults.get('lengthOfStay', ''))
        )

        diagnosis_keys = list(DIAGNOSIS_LABELS)
        diagnosis_default = defaults.get('primaryDiagnosis', 'respiratory')
        primary_diagnosis = st.selectbox(
            "Primary Diagnosis",
            options=diagnosis_keys,
            index=diagnosis_keys.index(diagnosis_default) if diagnosis_default in diagnosis_keys
            else diagnosis_keys.index('other'),
            format_func=lambda key: DIAGNOSIS_LABELS[key]
        )

        st.subheader("Vital Signs")
        st.caption("Leave blank if not assessed")

        vitals = {}
        col1, col2 = st.columns(2)
        for idx, (form_name, label, low, high) in enumerate(VITAL_INPUTS):
            with (col1 if idx % 2 == 0 else col2):
                vitals[form_name] = st.number_input(
                    label, min_value=low, max_value=high,
                    value=_default_float(defaults, form_name)
                )

        st.subheader("Comorbidities")
        flags = {}
        col1, col2 = st.columns(2)
        for idx, (name, label) in enumerate(COMORBIDITY_LABELS.items()):
            form_name = CANONICAL_TO_FORM[name]
            with (col1 if idx % 2 == 0 else col2):
                flags[form_name] = st.checkbox(label, value=_default_flag(defaults, name))

        st.subheader("Interventions")
        for name, label in INTERVENTION_LABELS.items():
            form_name = CANONICAL_TO_FORM[name]
            flags[form_name] = st.checkbox(label, value=_default_flag(defaults, name))

        previous_icu = st.checkbox(
            "Previous ICU Admission",
            value=_default_flag(defaults, 'previous_icu_admission')
        )

        submitted = st.form_submit_button("🔍 Assess Risk", use_container_width=True)

    # ==========================================================================
    # MAIN PANEL: TABS
    # ==========================================================================

    tab1, tab2, tab3 = st.tabs(["📊 Single Patient", "📁 Batch Processing", "🗂️ History"])

    # --------------------------------------------------------------------------
    # TAB 1: SINGLE PATIENT ASSESSMENT
    # --------------------------------------------------------------------------

    with tab1:
        if submitted:
            patient_data = {
                'id': patient_id,
                'age': age,
                'gender': gender,
                'height': height,
                'weight': weight,
                'lengthOfStay': length_of_stay,
                'primaryDiagnosis': primary_diagnosis,
                CANONICAL_TO_FORM['previous_icu_admission']: previous_icu,
                **vitals,
                **flags,
            }

            errors = validate_fields(patient_data, SourceKind.FORM)
            if errors:
                st.error("Please correct the following fields:")
                for field_name, message in errors.items():
                    st.markdown(f"- **{display_name(field_name).capitalize()}** {message}")
            else:
                assessment = scorer.predict(patient_data, SourceKind.FORM)
                render_assessment(assessment)

        else:
            st.info("👈 Enter patient information in the sidebar and click **Assess Risk** to see results.")

            with st.expander("📌 Quick Start Guide"):
                st.markdown(f"""
                **How to use this tool:**

                1. Enter age, gender, length of stay and primary diagnosis (required)
                2. Enter vital signs if they were assessed
                3. Tick comorbidities and ICU interventions
                4. Click "Assess Risk" to see the result

                **Outcome labels:**
                - Low Risk: score below {OUTCOME_THRESHOLDS['moderate']}
                - Moderate Risk: score {OUTCOME_THRESHOLDS['moderate']} to {OUTCOME_THRESHOLDS['high'] - 1}
                - High Risk: score {OUTCOME_THRESHOLDS['high']} or above
                """)

    # --------------------------------------------------------------------------
    # TAB 2: BATCH PROCESSING
    # --------------------------------------------------------------------------

    with tab2:
        st.subheader("📁 Batch Patient Processing")
        st.markdown("""
        Upload a CSV file to score a whole census. Rows that cannot be read are
        skipped and listed; every other patient is still scored.
        """)

        uploaded_file = st.file_uploader(
            "Upload Patient CSV",
            type=['csv'],
            help="Template headers (snake_case) or intake form names (camelCase)"
        )

        if uploaded_file is not None:
            batch = parse_patient_csv(decode_csv_bytes(uploaded_file.getvalue()))

            if batch.skipped:
                st.warning(batch.summary())
            else:
                st.success(batch.summary())

            if batch.records and st.button("🚀 Run Batch Assessment", use_container_width=True):
                with st.spinner("Scoring patients..."):
                    assessments = scorer.score_batch(batch.records, return_dataframe=False)
                    results_df = assessments_to_dataframe(assessments)

                st.markdown("---")
                st.subheader("📊 Batch Results Summary")

                summary = analyze_population(batch.records, assessments)

                col1, col2, col3, col4 = st.columns(4)
                col1.metric("Total Patients", summary.patient_count)
                col2.metric("High Risk", summary.high_risk_count)
                col3.metric("Average Risk", f"{summary.mean_risk_score:.1f}%")
                col4.metric("Max Risk", f"{results_df['risk_score'].max()}%")

                st.plotly_chart(create_risk_histogram(assessments), use_container_width=True)
                st.plotly_chart(create_label_pie(assessments), use_container_width=True)

                st.subheader("Population Insights")
                for insight in population_insights(summary):
                    st.markdown(f"- {insight}")

                st.subheader("Detailed Results")

                def highlight_risk(row):
                    if row['outcome_label'] == OutcomeLabel.HIGH_RISK.value:
                        return ['background-color: #f5b7b1'] * len(row)
                    elif row['outcome_label'] == OutcomeLabel.MODERATE_RISK.value:
                        return ['background-color: #fdebd0'] * len(row)
                    return [''] * len(row)

                st.dataframe(results_df.style.apply(highlight_risk, axis=1),
                             use_container_width=True)

                st.download_button(
                    label="📥 Download Results CSV",
                    data=results_df.to_csv(index=False),
                    file_name="icu_readmission_risk_results.csv",
                    mime="text/csv",
                    use_container_width=True
                )

        st.markdown("---")
        with st.expander("📋 Download CSV Template"):
            st.download_button(
                label="📥 Download Template CSV",
                data=get_csv_template(),
                file_name="patient_template.csv",
                mime="text/csv"
            )

    # --------------------------------------------------------------------------
    # TAB 3: ASSESSMENT HISTORY
    # --------------------------------------------------------------------------

    with tab3:
        st.subheader("🗂️ Assessment History")
        history = scorer.history_store.list()
        if history:
            st.caption("First assessment per patient id in this session")
            st.dataframe(history, use_container_width=True)
        else:
            st.info("No assessments yet.")

    # ==========================================================================
    # FOOTER
    # ==========================================================================

    st.markdown("---")
    st.markdown("""
    <div style="text-align: center; color: gray; font-size: 12px;">
        Rule-based decision support | Not a substitute for clinical judgment
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
