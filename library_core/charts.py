from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Sequence

import altair as alt
import pandas as pd

from library_core.analytics import GenreCount, TopBorrower

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def genre_bar_chart(genres: Sequence[GenreCount], *, top: int = 8) -> Dict[str, Any]:
    df = pd.DataFrame([asdict(g) for g in genres[:top]], columns=["genre", "count"])
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("genre:N", title="Genre", sort=None, axis=alt.Axis(labelAngle=-45)),
            y=alt.Y("count:Q", title="Times Borrowed"),
            tooltip=["genre", alt.Tooltip("count:Q", title="Borrowed")],
        )
    )
    return to_vega_spec(chart)


def genre_share_chart(genres: Sequence[GenreCount], *, top: int = 5) -> Dict[str, Any]:
    df = pd.DataFrame([asdict(g) for g in genres[:top]], columns=["genre", "count"])
    chart = (
        alt.Chart(df)
        .mark_arc(outerRadius=80)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("genre:N", title="Genre", sort=None),
            tooltip=["genre", "count"],
        )
    )
    return to_vega_spec(chart)


def top_borrowers_chart(borrowers: Sequence[TopBorrower]) -> Dict[str, Any]:
    df = pd.DataFrame([asdict(b) for b in borrowers], columns=["user_id", "name", "borrow_count", "total_fines"])
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("borrow_count:Q", title="Books Borrowed"),
            y=alt.Y("name:N", title="Borrower", sort=None),
            tooltip=[
                "user_id",
                "name",
                alt.Tooltip("borrow_count:Q", title="Borrowed"),
                alt.Tooltip("total_fines:Q", title="Fines", format=",.2f"),
            ],
        )
    )
    return to_vega_spec(chart)
