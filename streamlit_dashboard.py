import html

import streamlit as st
import pandas as pd
import numpy as np
import plotly.express as px
import plotly.graph_objects as go

from tenmans.config import DATA_FOLDER, EVENTS_FILE, LEADERBOARD_TOP_N
from tenmans.events import EventRegistry
from tenmans.scoring.leaderboard import compute_leaderboard, leaderboard_frame
from tenmans.storage import CsvAggregateStore

# --- Page Configuration ---
st.set_page_config(
    page_title="10-Mans Leaderboard",
    page_icon="🎯",
    layout="wide",
    initial_sidebar_state="collapsed"
)

# --- Design System ---
# Static accent colors (theme-independent)
ACCENT_COLORS = {
    "primary": "#FF6B6B",       # Coral red - primary accent
    "info": "#3B82F6",          # Blue - informational
    "muted": "rgba(128,128,128,0.6)",
}

# --- Leaderboard Flourishes ---
# Icons and decorations for top players
RANK_ICONS = {
    1: {"icon": "👑", "color": "#FFD700", "label": "Champion"},
    2: {"icon": "🥈", "color": "#C0C0C0", "label": "Runner-up"},
    3: {"icon": "🥉", "color": "#CD7F32", "label": "Third Place"},
}


def get_rank_badge_html(rank):
    """Generate HTML for a rank badge with icon and styling."""
    rank = int(rank)
    if rank not in RANK_ICONS:
        return f'<span style="font-weight:600;">#{rank}</span>'

    info = RANK_ICONS[rank]
    badge_style = f'display:inline-flex;align-items:center;gap:0.3rem;font-weight:700;color:{info["color"]};text-shadow:0 0 10px {info["color"]}40;'
    return f'<span style="{badge_style}"><span style="font-size:1.2rem;">{info["icon"]}</span>#{rank}</span>'


def generate_podium_cards(df):
    """HTML cards for the top three players."""
    if df.empty:
        return "<p>No players yet</p>"

    card_style = "background:linear-gradient(135deg, var(--secondary-background-color) 0%, rgba(255,107,107,0.15) 100%);border:1px solid rgba(255,255,255,0.2);border-radius:12px;padding:1rem;margin-bottom:0.75rem;"
    stat_layout = "display:flex;flex-direction:column;align-items:center;text-align:center;"
    label_style = "font-size:0.8rem;text-transform:uppercase;color:var(--text-color);font-weight:500;"
    value_style = "font-size:1.4rem;font-weight:700;color:var(--text-color);"
    badge_style = f"font-size:0.75rem;padding:0.1rem 0.5rem;border-radius:999px;border:1px solid {ACCENT_COLORS['primary']};"

    def stat(label, value):
        return f'<div style="{stat_layout}"><span style="{label_style}">{label}</span><span style="{value_style}">{value}</span></div>'

    cards = []
    for _, row in df.head(3).iterrows():
        name = html.escape(f"{row['name']}#{row['tag']}")
        badges = "".join(
            f'<span style="{badge_style}">{html.escape(badge)}</span>' for badge in row['badges']
        )
        stats = "".join([
            stat("Score", f"{int(row['score'])}"),
            stat("ACS", f"{row['avg_acs']:.0f}"),
            stat("KDA", f"{row['avg_kda']:.2f}"),
            stat("HS%", f"{row['hs_percent']:.1f}"),
            stat("Win%", f"{row['winrate']:.0f}"),
        ])
        cards.append(
            f'<div style="{card_style}"><div style="display:flex;gap:0.75rem;align-items:center;">'
            f'{get_rank_badge_html(row["rank"])}<span style="font-weight:700;">{name}</span>{badges}</div>'
            f'<div style="display:grid;grid-template-columns:repeat(5,1fr);gap:0.5rem;margin-top:0.5rem;">{stats}</div></div>'
        )
    return "".join(cards)


def format_social(social):
    """Render social links as "network: link" text for the table."""
    return " | ".join(f"{network}: {link}" for network, link in sorted(social.items()))


def apply_plotly_style(fig):
    """Apply consistent styling to Plotly figures."""
    system_font = '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif'
    grid_color = "rgba(128, 128, 128, 0.4)"

    fig.update_layout(
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(family=system_font, size=16),
        xaxis=dict(gridcolor=grid_color, showgrid=False, zeroline=False),
        yaxis=dict(gridcolor=grid_color, showgrid=True, zeroline=False),
        hoverlabel=dict(bgcolor="rgba(50, 50, 50, 0.9)", font=dict(color="#FFFFFF", family=system_font, size=14)),
        dragmode=False,  # Disable pan/zoom to prevent scroll hijacking on mobile
    )
    return fig


def score_chart(df):
    """Bar chart of the top scores, podium bars highlighted."""
    top = df.head(LEADERBOARD_TOP_N)
    labels = top['name'] + "#" + top['tag']
    colors = np.where(top['rank'] <= 3, ACCENT_COLORS["primary"], ACCENT_COLORS["muted"])
    fig = go.Figure(go.Bar(
        x=labels,
        y=top['score'],
        marker_color=colors,
        hovertemplate="%{x}<br>Score %{y}<extra></extra>",
    ))
    fig.update_layout(xaxis_title="", yaxis_title="Score", height=380)
    return apply_plotly_style(fig)


def winrate_scatter(df):
    """ACS against winrate, sized by matches played."""
    played = df[df['matches_played'] > 0]
    fig = px.scatter(
        played,
        x='avg_acs',
        y='winrate',
        size='matches_played',
        hover_name=played['name'] + "#" + played['tag'],
        color_discrete_sequence=[ACCENT_COLORS["info"]],
        labels={'avg_acs': 'Avg ACS', 'winrate': 'Win %', 'matches_played': 'Matches'},
    )
    fig.update_layout(height=380)
    return apply_plotly_style(fig)


# --- Data Loading Functions ---
# The leaderboard is recomputed on every run; aggregates change with each match.
def load_leaderboard(store):
    """Score every stored aggregate and return the ordered leaderboard table."""
    df = leaderboard_frame(compute_leaderboard(store.all_aggregates()))
    return df.assign(badges=df['badges'].map(list), social=df['social'].map(format_social))


def load_events_frame(registry):
    """One row per event with its match count."""
    events = registry.list_events()
    return pd.DataFrame(
        [{
            'name': e.name,
            'teams': e.num_teams,
            'team_size': e.team_size,
            'rounds': e.rounds,
            'matches': len(e.matches),
            'created_at': e.created_at,
        } for e in events],
        columns=['name', 'teams', 'team_size', 'rounds', 'matches', 'created_at'],
    )


def load_player_history(store, name, tag):
    """Per-match stat lines for one player, oldest first."""
    rows = []
    for match, stat in store.match_stats(name, tag):
        position = match.stats.index(stat)
        rows.append({
            'played_at': match.played_at,
            'team': match.team_of(position),
            'won': match.team_of(position) == match.winner_team,
            'kills': stat.kills,
            'deaths': stat.deaths,
            'assists': stat.assists,
            'acs': stat.acs,
            'first_bloods': stat.first_bloods,
            'hs_percent': stat.hs_percent,
        })
    return pd.DataFrame(rows)


# --- Main App ---
def main():
    store = CsvAggregateStore(DATA_FOLDER)
    registry = EventRegistry(DATA_FOLDER / EVENTS_FILE)

    st.title("10-Mans Leaderboard")

    df = load_leaderboard(store)
    last_match = store.last_match_at()

    col1, col2, col3 = st.columns(3)
    col1.metric("Players", store.players_count())
    col2.metric("Matches", store.matches_count())
    col3.metric("Last Match", last_match.strftime('%Y-%m-%d') if last_match else "—")

    tab_board, tab_players, tab_events = st.tabs(["Leaderboard", "Players", "Events"])

    with tab_board:
        st.markdown(generate_podium_cards(df), unsafe_allow_html=True)

        if not df.empty:
            st.plotly_chart(score_chart(df), use_container_width=True)

        column_config = {
            "rank": st.column_config.NumberColumn("Rank", format="%d"),
            "name": st.column_config.TextColumn("Player"),
            "tag": st.column_config.TextColumn("Tag"),
            "score": st.column_config.NumberColumn("Score", format="%d"),
            "avg_acs": st.column_config.NumberColumn("ACS", format="%.1f"),
            "avg_kda": st.column_config.NumberColumn("KDA", format="%.2f", help="Average kills per average death"),
            "hs_percent": st.column_config.NumberColumn("HS %", format="%.1f"),
            "avg_first_bloods": st.column_config.NumberColumn("FB / Match", format="%.2f"),
            "winrate": st.column_config.NumberColumn("Win %", format="%.1f"),
            "matches_played": st.column_config.NumberColumn("Matches", format="%d"),
            "badges": st.column_config.ListColumn("Badges"),
            "social": st.column_config.TextColumn("Social"),
        }
        st.dataframe(df, hide_index=True, use_container_width=True, column_config=column_config)

    with tab_players:
        if df.empty:
            st.info("No players registered yet.")
        else:
            st.plotly_chart(winrate_scatter(df), use_container_width=True)
            options = list(zip(df['name'], df['tag']))
            choice = st.selectbox("Player", options, format_func=lambda key: f"{key[0]}#{key[1]}")
            history = load_player_history(store, *choice)
            if history.empty:
                st.info("No matches recorded for this player.")
            else:
                st.dataframe(history, hide_index=True, use_container_width=True)

    with tab_events:
        events_df = load_events_frame(registry)
        if events_df.empty:
            st.info("No events yet.")
        else:
            st.caption(f"{registry.matches_count()} event matches")
            st.dataframe(events_df, hide_index=True, use_container_width=True)


if __name__ == "__main__":
    main()
