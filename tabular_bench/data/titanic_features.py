"""Feature-engineering helpers for the Titanic passenger data.

Meant to be used inside a ``mutate`` pipeline operator, e.g.::

    po("mutate", mutation={
        "title": lambda df: extract_title(df["name"]),
        "deck": lambda df: extract_deck(df["cabin"]),
        "family_size": lambda df: family_size(df["sibsp"], df["parch"]),
    })
"""

import numpy as np
import pandas as pd

# Titles seen fewer than a handful of times are folded into these groups
TITLE_GROUPS = {
    "Mlle": "Miss",
    "Ms": "Miss",
    "Mme": "Mrs",
    "Lady": "Rare",
    "Countess": "Rare",
    "the Countess": "Rare",
    "Dona": "Rare",
    "Don": "Rare",
    "Sir": "Rare",
    "Jonkheer": "Rare",
    "Capt": "Rare",
    "Col": "Rare",
    "Major": "Rare",
    "Dr": "Rare",
    "Rev": "Rare",
}


def extract_title(name: pd.Series) -> pd.Series:
    """Title between the comma and the first period ("Braund, Mr. Owen" -> "Mr")."""
    title = name.astype("object").str.extract(r",\s*([^\.]+)\.", expand=False).str.strip()
    return title.replace(TITLE_GROUPS).astype("category")


def extract_deck(cabin: pd.Series) -> pd.Series:
    """Deck letter of the first cabin; passengers without cabin get "unknown"."""
    deck = cabin.astype("object").str.strip().str[0]
    return deck.fillna("unknown").astype("category")


def family_size(sibsp: pd.Series, parch: pd.Series) -> pd.Series:
    """Number of family members aboard, the passenger included."""
    return (sibsp + parch + 1).astype("int64")


def ticket_prefix(ticket: pd.Series) -> pd.Series:
    """Alphabetic ticket prefix ("A/5 21171" -> "A5"); purely numeric tickets get "none"."""
    parts = ticket.astype("object").str.rsplit(" ", n=1)
    prefix = parts.map(lambda p: p[0] if isinstance(p, list) and len(p) > 1 else np.nan)
    prefix = prefix.str.replace(r"[\./]", "", regex=True).str.upper()
    return prefix.fillna("none").astype("category")
