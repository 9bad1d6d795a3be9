#!/usr/bin/env python3
"""
Slot Engine CLI - math tooling for slot game configurations.

Usage:
    slot-engine validate games/gem_rush.json
    slot-engine estimate games/gem_rush.json
    slot-engine strips games/gem_rush.json
    slot-engine spin games/gem_rush.json --seed 7 --count 3
    slot-engine simulate games/gem_rush.json --trials 200000 --workers 4 --graphs
"""
import json
import os

import click

from slot_engine.app import configure_logging, create_engine
from slot_engine.config import Config
from slot_engine.exceptions import EngineException
from slot_engine.schemas import load_game_config
from slot_engine.services.rtp_estimator import MIN_EMPIRICAL_TRIALS, estimate, simulate, simulate_parallel
from slot_engine.utils.reel_strips import strip_counts, ReelStripCache
from slot_engine.utils.rng import SeededRandomSource, SystemRandomSource
from slot_engine.utils.sim_report import generate_graphs, summary_lines


def resolve_config_path(path: str, config_class=Config) -> str:
    """Paths that do not exist as given are looked up under CONFIG_DIR."""
    if os.path.exists(path) or os.path.isabs(path):
        return path
    candidate = os.path.join(config_class.CONFIG_DIR, path)
    return candidate if os.path.exists(candidate) else path


def _load(ctx, path):
    return load_game_config(resolve_config_path(path, ctx.obj['config']))


def _fail(ctx, error: EngineException):
    click.echo(f"❌ Error [{error.error_code}]: {error.status_message}", err=True)
    if error.details:
        click.echo(json.dumps(error.details, indent=2, default=str), err=True)
    ctx.exit(1)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, verbose):
    """Slot Engine CLI - reel strips, spins and RTP for slot game configurations."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault('config', Config)
    ctx.obj['verbose'] = verbose
    configure_logging(debug=verbose or ctx.obj['config'].DEBUG, config_class=ctx.obj['config'])


@cli.command()
@click.argument('config_path')
@click.pass_context
def validate(ctx, config_path):
    """Validate a JSON game configuration."""
    try:
        game_config = _load(ctx, config_path)
    except EngineException as e:
        _fail(ctx, e)
        return
    click.echo(f"✅ '{game_config.name}' is valid: {game_config.reel_count}x{game_config.row_count} "
               f"{game_config.pay_mode.value}, {len(game_config.weight_table.symbols)} symbols, "
               f"volatility {game_config.rt_config.volatility.value}")


@cli.command('estimate')
@click.argument('config_path')
@click.pass_context
def estimate_cmd(ctx, config_path):
    """Theoretical RTP from the game's RTP configuration."""
    try:
        game_config = _load(ctx, config_path)
    except EngineException as e:
        _fail(ctx, e)
        return
    rt = game_config.rt_config
    click.echo(f"Theoretical RTP: {estimate(rt):.2f}% "
               f"(target {rt.target_rtp * 100:.2f}%, volatility {rt.volatility.value})")


@cli.command()
@click.argument('config_path')
@click.option('--show', is_flag=True, help='Print the full symbol sequence of each strip')
@click.pass_context
def strips(ctx, config_path, show):
    """Show the weighted reel strips built for a game."""
    try:
        game_config = _load(ctx, config_path)
        cache = ReelStripCache()
        volatility = game_config.rt_config.volatility
        built = cache.get_strips(game_config.weight_table, volatility)
    except EngineException as e:
        _fail(ctx, e)
        return
    for reel_index, strip in enumerate(built):
        counts = ", ".join(f"{symbol}={n}" for symbol, n in strip_counts(reel_index, game_config.weight_table, volatility) if n)
        click.echo(f"Reel {reel_index}: length {len(strip)} ({counts})")
        if show:
            click.echo("  " + " ".join(strip))


@cli.command()
@click.argument('config_path')
@click.option('--seed', type=int, default=None, help='Seed for a reproducible spin sequence')
@click.option('--count', type=int, default=1, show_default=True, help='Number of spins to play')
@click.option('--bet', type=float, default=1.0, show_default=True, help='Bet per paid spin')
@click.pass_context
def spin(ctx, config_path, seed, count, bet):
    """Play spins on one session and print each outcome as JSON."""
    try:
        engine = create_engine(_load(ctx, config_path), config_class=ctx.obj['config'])
        rng = SeededRandomSource(seed) if seed is not None else SystemRandomSource()
        session = engine.new_session()
        for _ in range(count):
            outcome = engine.spin(rng, session, bet)
            click.echo(json.dumps(outcome.to_dict(), default=str))
    except EngineException as e:
        _fail(ctx, e)


@cli.command('simulate')
@click.argument('config_path')
@click.option('--trials', type=int, default=None, help='Number of trials (paid spin plus its free spins)')
@click.option('--workers', type=int, default=None, help='Worker processes; 1 runs in-process')
@click.option('--seed', type=int, default=None, help='Root seed for reproducible runs')
@click.option('--bet', type=float, default=None, help='Bet per paid spin')
@click.option('--graphs', is_flag=True, help='Save matplotlib graphs of the run')
@click.option('--graph-dir', default=None, help='Directory for graphs')
@click.option('--as-json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
def simulate_cmd(ctx, config_path, trials, workers, seed, bet, graphs, graph_dir, as_json):
    """Measure the empirical RTP of a game by Monte Carlo simulation."""
    config = ctx.obj['config']
    trials = trials if trials is not None else config.SIM_TRIALS
    workers = workers if workers is not None else config.SIM_WORKERS
    seed = seed if seed is not None else config.SIM_SEED
    bet = bet if bet is not None else config.SIM_BET

    try:
        game_config = _load(ctx, config_path)
        if trials < MIN_EMPIRICAL_TRIALS and not as_json:
            click.echo(f"⚠️  {trials} trials is below the recommended minimum of {MIN_EMPIRICAL_TRIALS}", err=True)
        if workers > 1:
            result = simulate_parallel(game_config, trials, workers, seed=seed, bet=bet)
        else:
            result = simulate(game_config, trials, seed=seed, bet=bet)
    except EngineException as e:
        _fail(ctx, e)
        return

    target = game_config.rt_config.target_rtp * 100
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for line in summary_lines(result, target_rtp=target):
            click.echo(line)

    if graphs:
        for path in generate_graphs(result, graph_dir or config.GRAPH_DIR, target_rtp=target):
            click.echo(f"📈 Saved {path}", err=as_json)


if __name__ == '__main__':
    cli()
