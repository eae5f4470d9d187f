from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class FeatureKind(Enum):
    RANGE = 'range'
    CHOICE = 'choice'


@dataclass(frozen=True)
class FeatureDefinition:
    """A logical monitor control and the VCP codes that may implement it.

    Displays disagree on which code they honour for some controls, so
    ``codes`` is tried in order until one answers.
    """

    name: str
    codes: Tuple[str, ...]
    kind: FeatureKind
    icon_name: str = ''
    choices: Dict[str, str] = field(default_factory=dict)

    @property
    def primary_code(self) -> str:
        return self.codes[0]


def _range_feature(name: str, *codes: str, icon_name: str = '') -> FeatureDefinition:
    return FeatureDefinition(name=name, codes=codes, kind=FeatureKind.RANGE, icon_name=icon_name)


def _choice_feature(name: str, code: str, choices: Dict[str, str]) -> FeatureDefinition:
    return FeatureDefinition(name=name, codes=(code,), kind=FeatureKind.CHOICE, choices=choices)


BRIGHTNESS = _range_feature('External Monitor Brightness', '10', '6B', icon_name='display-brightness-symbolic')
CONTRAST = _range_feature('External Monitor Contrast', '12')
VOLUME = _range_feature('External Monitor Volume', '62', icon_name='audio-volume-high-symbolic')
POWER_MODE = _choice_feature(
    'Power mode',
    'D6',
    {
        'x01': 'DPM: On, DPMS: Off',
        'x02': 'DPM: Off, DPMS: Standby',
        'x03': 'DPM: Off, DPMS: Suspend',
        'x04': 'DPM: Off, DPMS: Off',
        'x05': 'Write only value to turn off display',
    },
)

POWER_ON = 'x01'
