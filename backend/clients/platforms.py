"""
Platform catalogue shared by intake, verification, the ledger and exports.
"""

from collections import OrderedDict

DRAFTKINGS = 'DRAFTKINGS'
FANDUEL = 'FANDUEL'
BETMGM = 'BETMGM'
CAESARS = 'CAESARS'
FANATICS = 'FANATICS'
BALLYBET = 'BALLYBET'
BETRIVERS = 'BETRIVERS'
BET365 = 'BET365'
BANK = 'BANK'
PAYPAL = 'PAYPAL'
EDGEBOOST = 'EDGEBOOST'

SPORTS = 'sports'
FINANCIAL = 'financial'

PLATFORM_INFO = OrderedDict([
    (DRAFTKINGS, {'name': 'DraftKings', 'abbrev': 'DK', 'category': SPORTS}),
    (FANDUEL, {'name': 'FanDuel', 'abbrev': 'FD', 'category': SPORTS}),
    (BETMGM, {'name': 'BetMGM', 'abbrev': 'MGM', 'category': SPORTS}),
    (CAESARS, {'name': 'Caesars', 'abbrev': 'CZR', 'category': SPORTS}),
    (FANATICS, {'name': 'Fanatics', 'abbrev': 'FAN', 'category': SPORTS}),
    (BALLYBET, {'name': 'Bally Bet', 'abbrev': 'BB', 'category': SPORTS}),
    (BETRIVERS, {'name': 'BetRivers', 'abbrev': 'BR', 'category': SPORTS}),
    (BET365, {'name': 'Bet365', 'abbrev': '365', 'category': SPORTS}),
    (BANK, {'name': 'Bank', 'abbrev': 'BNK', 'category': FINANCIAL}),
    (PAYPAL, {'name': 'PayPal', 'abbrev': 'PP', 'category': FINANCIAL}),
    (EDGEBOOST, {'name': 'EdgeBoost', 'abbrev': 'EB', 'category': FINANCIAL}),
])

ALL_PLATFORMS = list(PLATFORM_INFO.keys())
SPORTS_PLATFORMS = [code for code, info in PLATFORM_INFO.items() if info['category'] == SPORTS]
FINANCIAL_PLATFORMS = [code for code, info in PLATFORM_INFO.items() if info['category'] == FINANCIAL]

PLATFORM_CHOICES = [(code, info['name']) for code, info in PLATFORM_INFO.items()]

_CODES_BY_NAME = {info['name']: code for code, info in PLATFORM_INFO.items()}


def get_platform_name(code):
    info = PLATFORM_INFO.get(code)
    return info['name'] if info else code


def get_platform_abbrev(code):
    info = PLATFORM_INFO.get(code)
    return info['abbrev'] if info else code


def platform_code_from_name(name):
    """Map a display name ("Bally Bet") back to its code, or None when unknown."""
    return _CODES_BY_NAME.get(name)


def is_valid_platform_name(name):
    return name in _CODES_BY_NAME
