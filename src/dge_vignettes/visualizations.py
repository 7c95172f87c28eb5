"""Visualization functions for the PCA vignette."""

from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .pca import PCAResult


def create_pca_plot(
    result: PCAResult,
    metadata: Optional[pd.DataFrame] = None,
    color_col: Optional[str] = None,
    x: str = "PC1",
    y: str = "PC2",
    title: str = "PCA Plot"
) -> go.Figure:
    """
    Create PCA plot of samples.

    Args:
        result: Output of run_pca
        metadata: Per-sample annotations indexed like result.scores
        color_col: Column of metadata used to colour the samples
        x: Component on the x axis
        y: Component on the y axis
        title: Plot title

    Returns:
        Plotly Figure object
    """
    pcs = list(result.scores.columns)
    if x not in pcs or y not in pcs:
        raise ValueError(f"Components {x} and {y} must be among {', '.join(pcs)}")

    pca_df = result.scores[[x, y]].copy()
    if metadata is not None and color_col is not None:
        pca_df = pca_df.join(metadata[[color_col]])

    var_exp = dict(zip(pcs, (v * 100 for v in result.explained_variance_ratio)))

    fig = px.scatter(
        pca_df,
        x=x,
        y=y,
        color=color_col if color_col in pca_df.columns else None,
        hover_name=pca_df.index,
        title=title,
        labels={
            x: f'{x} ({var_exp[x]:.1f}%)',
            y: f'{y} ({var_exp[y]:.1f}%)'
        }
    )

    fig.update_traces(marker=dict(size=10, line=dict(width=1, color='white')))

    fig.update_layout(
        template='plotly_white',
        width=800,
        height=600,
        showlegend=color_col is not None
    )

    return fig


def create_variance_plot(result: PCAResult, title: str = "Variance Explained") -> go.Figure:
    """Bar chart of the percentage of variance explained by each component."""
    pcs = list(result.scores.columns)
    percent = [v * 100 for v in result.explained_variance_ratio]

    fig = go.Figure(go.Bar(
        x=pcs,
        y=percent,
        marker_color='#3498DB',
        hovertemplate='%{x}: %{y:.1f}%<extra></extra>'
    ))

    fig.update_layout(
        title=title,
        xaxis_title="Principal Component",
        yaxis_title="Variance Explained (%)",
        template='plotly_white',
        width=700,
        height=450
    )

    return fig
