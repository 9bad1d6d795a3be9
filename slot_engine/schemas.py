"""
marshmallow schemas for JSON game configurations.

``build_game_config`` and ``load_game_config`` are the only entry points; any
schema or semantic failure leaves them as a ConfigurationError carrying the
field-level messages.
"""
import json
import logging
import os

from marshmallow import Schema, fields, ValidationError, post_load, validates, validates_schema
from marshmallow.validate import OneOf, Range, Length

from slot_engine.exceptions import ConfigurationError
from slot_engine.models import GameConfig, PayMode, RTConfig, WeightTable

logger = logging.getLogger(__name__)


class SymbolSchema(Schema):
    id = fields.Str(required=True, validate=Length(min=1, max=32))
    weight = fields.Int(required=True, strict=True, validate=Range(min=0))
    reel_weights = fields.List(fields.Int(allow_none=True, strict=True, validate=Range(min=0)), load_default=None)
    payouts = fields.Dict(keys=fields.Int(validate=Range(min=1)), values=fields.Float(validate=Range(min=0)), load_default=dict)


class LayoutSchema(Schema):
    reels = fields.Int(required=True, strict=True, validate=Range(min=1, max=12))
    rows = fields.Int(required=True, strict=True, validate=Range(min=1, max=12))


class RTConfigSchema(Schema):
    target_rtp = fields.Float(required=True, validate=Range(min=0.85, max=0.98))
    volatility = fields.Str(required=True, validate=OneOf(['low', 'medium', 'high']))
    bonus_frequency = fields.Float(required=True, validate=Range(min=0, min_inclusive=False))
    jackpot_frequency = fields.Float(required=True, validate=Range(min=0, min_inclusive=False))

    @post_load
    def make_rt_config(self, data, **kwargs):
        return RTConfig(**data)


class GameConfigSchema(Schema):
    name = fields.Str(required=True, validate=Length(min=1, max=100))
    layout = fields.Nested(LayoutSchema, required=True)
    pay_mode = fields.Str(load_default=PayMode.LINES.value, validate=OneOf([m.value for m in PayMode]))
    symbols = fields.List(fields.Nested(SymbolSchema), required=True, validate=Length(min=1))
    paylines = fields.List(fields.List(fields.Int(strict=True, validate=Range(min=0))), load_default=list)
    rt_config = fields.Nested(RTConfigSchema, required=True)
    wild_symbol = fields.Str(load_default=None, allow_none=True)
    scatter_symbol = fields.Str(load_default=None, allow_none=True)
    bonus_symbol = fields.Str(load_default=None, allow_none=True)
    jackpot_symbol = fields.Str(load_default=None, allow_none=True)
    scatter_payouts = fields.Dict(keys=fields.Int(validate=Range(min=1)), values=fields.Float(validate=Range(min=0)), load_default=dict)
    min_cluster_size = fields.Int(load_default=5, strict=True, validate=Range(min=2))
    cascades_enabled = fields.Bool(load_default=True)
    cascade_fill_symbols = fields.List(fields.Str(), load_default=list)
    force_outcomes = fields.Bool(load_default=False)

    @validates('symbols')
    def validate_unique_symbols(self, value, **kwargs):
        ids = [symbol['id'] for symbol in value]
        duplicates = sorted({s for s in ids if ids.count(s) > 1})
        if duplicates:
            raise ValidationError(f'Duplicate symbol ids: {duplicates}.')

    @validates_schema
    def validate_reel_weights_length(self, data, **kwargs):
        reels = data.get('layout', {}).get('reels')
        if reels is None:
            return
        bad = [s['id'] for s in data.get('symbols', []) if s.get('reel_weights') is not None and len(s['reel_weights']) != reels]
        if bad:
            raise ValidationError(f'reel_weights must have exactly {reels} entries for symbols: {bad}.', 'symbols')

    @post_load
    def make_game_config(self, data, **kwargs):
        reels = data['layout']['reels']
        base_weights = {s['id']: s['weight'] for s in data['symbols']}
        overrides = {s['id']: s['reel_weights'] if s['reel_weights'] is not None else [None] * reels for s in data['symbols']}
        paytable = {s['id']: dict(s['payouts']) for s in data['symbols'] if s['payouts']}
        return GameConfig(
            name=data['name'],
            reel_count=reels,
            row_count=data['layout']['rows'],
            weight_table=WeightTable(base_weights, overrides, reels),
            rt_config=data['rt_config'],
            paytable=paytable,
            pay_mode=PayMode(data['pay_mode']),
            paylines=data['paylines'],
            scatter_symbol=data['scatter_symbol'],
            wild_symbol=data['wild_symbol'],
            bonus_symbol=data['bonus_symbol'],
            scatter_payouts=dict(data['scatter_payouts']),
            min_cluster_size=data['min_cluster_size'],
            cascades_enabled=data['cascades_enabled'],
            cascade_fill_symbols=data['cascade_fill_symbols'],
            force_outcomes=data['force_outcomes'],
            jackpot_symbol=data['jackpot_symbol'],
        )


def build_game_config(data: dict) -> GameConfig:
    try:
        return GameConfigSchema().load(data)
    except ValidationError as err:
        logger.warning(f"Game configuration rejected: {err.messages}")
        raise ConfigurationError(status_message="Game configuration failed validation", details=err.messages)


def load_game_config(path: str) -> GameConfig:
    """Reads and validates a JSON game configuration file."""
    if not os.path.exists(path):
        raise ConfigurationError(status_message=f"Game configuration file not found: {path}", details={"path": path})
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            status_message=f"Game configuration file is not valid JSON: {path}",
            details={"path": path, "error": str(e)}
        )
    except OSError as e:
        raise ConfigurationError(
            status_message=f"Game configuration file could not be read: {path}",
            details={"path": path, "error": str(e)}
        )
    if not isinstance(data, dict):
        raise ConfigurationError(status_message="Game configuration must be a JSON object", details={"path": path})
    game_config = build_game_config(data)
    logger.info(f"Loaded game configuration '{game_config.name}' from {path}")
    return game_config
