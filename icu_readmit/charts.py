"""
Plotly figures for the dashboard.
"""

from typing import Sequence

import plotly.express as px
import plotly.graph_objects as go

from .prediction import MAX_RISK_SCORE, OUTCOME_THRESHOLDS
from .records import OutcomeLabel, RiskAssessment

# Outcome label colors and display styling
LABEL_STYLES = {
    OutcomeLabel.LOW_RISK: {'color': '#27ae60', 'background': '#d5f5e3'},
    OutcomeLabel.MODERATE_RISK: {'color': '#f39c12', 'background': '#fdebd0'},
    OutcomeLabel.HIGH_RISK: {'color': '#e74c3c', 'background': '#f5b7b1'},
}


def create_gauge_chart(assessment: RiskAssessment) -> go.Figure:
    """Gauge of the risk score with the outcome label bands."""

    color = LABEL_STYLES[assessment.outcome_label]['color']
    moderate, high = OUTCOME_THRESHOLDS['moderate'], OUTCOME_THRESHOLDS['high']

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=assessment.risk_score,
        number={'suffix': '%', 'font': {'size': 48}},
        title={'text': "ICU Readmission Risk", 'font': {'size': 24}},
        gauge={
            'axis': {'range': [0, 100], 'tickwidth': 2},
            'bar': {'color': color, 'thickness': 0.75},
            'bgcolor': "white",
            'borderwidth': 2,
            'bordercolor': "gray",
            'steps': [
                {'range': [0, moderate], 'color': LABEL_STYLES[OutcomeLabel.LOW_RISK]['background']},
                {'range': [moderate, high], 'color': LABEL_STYLES[OutcomeLabel.MODERATE_RISK]['background']},
                {'range': [high, 100], 'color': LABEL_STYLES[OutcomeLabel.HIGH_RISK]['background']},
            ],
            'threshold': {
                'line': {'color': "black", 'width': 4},
                'thickness': 0.8,
                'value': MAX_RISK_SCORE
            }
        }
    ))

    fig.update_layout(
        height=300,
        margin=dict(l=20, r=20, t=60, b=20),
        font={'family': "Arial"}
    )

    return fig


def create_risk_histogram(assessments: Sequence[RiskAssessment]) -> go.Figure:
    """Histogram of risk scores for batch processing."""

    fig = go.Figure()

    fig.add_trace(go.Histogram(
        x=[a.risk_score for a in assessments],
        xbins=dict(start=0, end=100, size=5),
        marker_color='#3498db',
        opacity=0.7,
        name='Patients'
    ))

    fig.add_vline(x=OUTCOME_THRESHOLDS['moderate'], line_dash="dash", line_color="#f39c12",
                  annotation_text="Low/Moderate", annotation_position="top")
    fig.add_vline(x=OUTCOME_THRESHOLDS['high'], line_dash="dash", line_color="#e74c3c",
                  annotation_text="Moderate/High", annotation_position="top")

    fig.update_layout(
        title="Risk Score Distribution",
        xaxis_title="Risk Score (%)",
        yaxis_title="Number of Patients",
        height=400,
        showlegend=False
    )

    return fig


def create_label_pie(assessments: Sequence[RiskAssessment]) -> go.Figure:
    """Patients per outcome label."""

    counts = {label: 0 for label in OutcomeLabel}
    for a in assessments:
        counts[a.outcome_label] += 1

    names = [label.display for label in counts]
    return px.pie(
        values=list(counts.values()),
        names=names,
        color=names,
        color_discrete_map={
            label.display: LABEL_STYLES[label]['color'] for label in OutcomeLabel
        },
        title="Patients by Outcome Label"
    )


def create_factor_chart(assessment: RiskAssessment) -> go.Figure:
    """Key factors as a ranked bar list, most important on top."""

    factors = list(reversed(assessment.key_factors))
    rank = list(range(1, len(factors) + 1))

    fig = go.Figure(go.Bar(
        x=rank,
        y=factors,
        orientation='h',
        marker_color=LABEL_STYLES[assessment.outcome_label]['color'],
        hoverinfo='y',
    ))

    fig.update_layout(
        title="Key Risk Factors",
        xaxis=dict(visible=False),
        yaxis_title="",
        height=60 * max(len(factors), 2) + 80,
        margin=dict(l=250, r=30, t=50, b=20),
    )

    return fig
