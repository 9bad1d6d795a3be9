import logging
import os
from typing import List, Optional

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend, graphs are only saved to files
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def summary_lines(result, target_rtp: Optional[float] = None) -> List[str]:
    """Human-readable summary of a SimulationResult."""
    low, high = result.confidence_interval
    target_display = f"{target_rtp:.2f}%" if target_rtp is not None else "N/A"
    lines = [
        "--- Simulation Summary ---",
        f"Game: {result.game_name}",
        f"Trials: {result.trials_completed}/{result.trials_requested}" + (" (cancelled)" if result.cancelled else ""),
        f"Bet Per Trial: {result.bet}",
        f"Total Wagered: {result.total_wager:.2f}",
        f"Total Won: {result.total_win:.2f}",
        "",
        "--- Detailed Metrics ---",
        f"Overall RTP: {result.rtp:.2f}% (95% CI {low:.2f}% - {high:.2f}%, Target: {target_display})",
        f"Hit Frequency: {result.hit_frequency:.2f}% ({result.hit_count} winning paid spins)",
        f"Bonus Trigger Frequency: {result.bonus_frequency:.2f}% ({result.bonus_triggers} triggers)",
        f"Average Bonus Win: {result.avg_bonus_win:.2f} ({result.free_spins_played} free spins played)",
        f"Base Game RTP Contribution: {result.base_rtp:.2f}%",
        f"Bonus Game RTP Contribution: {result.bonus_rtp:.2f}%",
        f"Volatility Index (Return StdDev): {result.return_std:.2f}",
        f"Max Trial Win: {result.max_win:.2f}",
        "",
        "Win Distribution (by Bet Multiplier):",
    ]
    for mult, count in sorted(result.wins_by_multiplier.items()):
        share = 100.0 * count / result.trials_completed if result.trials_completed else 0.0
        lines.append(f"  {mult}x Bet: {count} times ({share:.2f}%)")
    return lines


def generate_graphs(result, graph_dir: str, target_rtp: Optional[float] = None) -> List[str]:
    """
    Saves the win multiplier histogram, the RTP convergence curve and the
    base/bonus contribution pie under ``graph_dir``. Returns the written paths.
    """
    os.makedirs(graph_dir, exist_ok=True)
    name_for_file = result.game_name.replace("/", "_").replace(" ", "_")
    written = []

    if result.wins_by_multiplier:
        multipliers = sorted(result.wins_by_multiplier.keys())
        counts = [result.wins_by_multiplier[m] for m in multipliers]
        plt.figure(figsize=(12, 7))
        plt.bar([f"{m}x" for m in multipliers], counts, color='skyblue', width=0.8)
        plt.title(f"Win Multiplier Distribution for {result.game_name}", fontsize=16)
        plt.xlabel("Bet Multiplier", fontsize=12)
        plt.ylabel("Frequency", fontsize=12)
        plt.xticks(rotation=45, ha="right", fontsize=10)
        plt.grid(axis='y', linestyle='--', alpha=0.7)
        plt.tight_layout()
        written.append(_save(os.path.join(graph_dir, f"{name_for_file}_win_multipliers.png")))

    points = result.rtp_over_time
    if points:
        plt.figure(figsize=(10, 6))
        plt.plot([p["trials"] for p in points], [p["rtp"] for p in points], label="Simulated RTP", marker='.', linestyle='-')
        if target_rtp is not None:
            plt.axhline(y=target_rtp, color='r', linestyle='--', label=f"Target RTP ({target_rtp:.2f}%)")
        plt.title(f"RTP Convergence for {result.game_name}", fontsize=16)
        plt.xlabel("Number of Trials", fontsize=12)
        plt.ylabel("RTP (%)", fontsize=12)
        plt.legend(fontsize=10)
        plt.grid(True, linestyle='--', alpha=0.7)
        plt.tight_layout()
        written.append(_save(os.path.join(graph_dir, f"{name_for_file}_rtp_convergence.png")))

    if result.base_win > 0 or result.bonus_win > 0:
        plt.figure(figsize=(8, 8))
        explode = (0, 0.1) if result.bonus_win > 0 else (0, 0)
        plt.pie([result.base_win, result.bonus_win], explode=explode, labels=('Base Game Wins', 'Bonus Game Wins'),
                colors=['lightcoral', 'lightskyblue'], autopct='%1.1f%%', startangle=90)
        plt.title(f"Win Contribution (Base vs Bonus)\nfor {result.game_name}", fontsize=16)
        plt.axis('equal')
        plt.tight_layout()
        written.append(_save(os.path.join(graph_dir, f"{name_for_file}_win_contributions.png")))

    plt.close('all')
    return written


def _save(path: str) -> str:
    plt.savefig(path)
    plt.clf()
    logger.info(f"Saved graph to {path}")
    return path
