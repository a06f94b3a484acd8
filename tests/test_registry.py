from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import pytest

from prefkeeper.errors import RegistrationConflict, RegistrationError
from prefkeeper.registry import PreferenceRegistry, Role
from prefkeeper.schema import pref_field, preference


@preference(group="audio", key="master")
@dataclass
class MasterVolume:
    value: float = 1.0


@preference(group="audio", key="music")
@dataclass
class MusicVolume:
    value: float = 0.8


@preference(group="audio", key="master")
@dataclass
class AlsoMaster:
    value: float = 0.5


@preference(key="audio")
@dataclass
class TopLevelAudio:
    value: bool = True


@preference(group="audio")
@dataclass
class AudioStruct:
    master: float = 1.0
    sfx: float = 1.0


@preference(group="dup")
@dataclass
class SelfConflict:
    a: int = pref_field(key="same", default=0)
    b: int = pref_field(key="same", default=1)


@dataclass
class Unannotated:
    value: int = 0


@preference(group="ui", key="mode")
class Mode(Enum):
    LIGHT = "light"
    DARK = "dark"


def test_fan_in_on_shared_group():
    reg = PreferenceRegistry()
    reg.register(MasterVolume)
    reg.register(MusicVolume)
    assert len(reg) == 2


def test_same_path_is_a_conflict():
    reg = PreferenceRegistry()
    reg.register(MasterVolume)
    with pytest.raises(RegistrationConflict) as info:
        reg.register(AlsoMaster)
    assert info.value.path == ("audio", "master")
    assert info.value.first == "MasterVolume"
    # Failed registration leaves the registry untouched
    assert reg.get(AlsoMaster) is None


def test_explicit_arguments_override_annotations():
    reg = PreferenceRegistry()
    reg.register(MasterVolume)
    item = reg.register(AlsoMaster, key="backup")
    assert item.plan.paths() == (("audio", "backup"),)


def test_leaf_where_table_is_needed_is_a_conflict():
    reg = PreferenceRegistry()
    reg.register(MasterVolume)
    with pytest.raises(RegistrationConflict):
        reg.register(TopLevelAudio)


def test_table_where_leaf_exists_is_a_conflict():
    reg = PreferenceRegistry()
    reg.register(TopLevelAudio)
    with pytest.raises(RegistrationConflict):
        reg.register(MusicVolume)


def test_struct_fields_conflict_with_other_items():
    reg = PreferenceRegistry()
    reg.register(MusicVolume)
    reg.register(AudioStruct, group="other")
    with pytest.raises(RegistrationConflict):
        reg.register(MasterVolume, group="other", key="sfx")


def test_duplicate_keys_inside_one_item():
    with pytest.raises(RegistrationConflict):
        PreferenceRegistry().register(SelfConflict)


def test_item_without_annotations_is_rejected():
    with pytest.raises(RegistrationError):
        PreferenceRegistry().register(Unannotated)


def test_duplicate_registration_is_rejected():
    reg = PreferenceRegistry()
    reg.register(MasterVolume)
    with pytest.raises(RegistrationError):
        reg.register(MasterVolume)


def test_registration_after_close_is_rejected():
    reg = PreferenceRegistry()
    reg.close()
    with pytest.raises(RegistrationError):
        reg.register(MasterVolume)


def test_state_pair_requires_enum():
    reg = PreferenceRegistry()
    item = reg.register(Mode, role=Role.STATE_PAIR)
    assert item.plan.is_root_scalar
    with pytest.raises(RegistrationError):
        reg.register(MusicVolume, role=Role.STATE_PAIR)


def test_plain_value_requires_dataclass():
    with pytest.raises(RegistrationError):
        PreferenceRegistry().register(Mode)


@preference(group="zoom", key="level")
@dataclass(frozen=True)
class FrozenZoom:
    value: float = 1.0


@dataclass(frozen=True)
class FrozenColor:
    red: int = 0
    green: int = 0


@preference(group="ui")
@dataclass
class UsesFrozenColor:
    accent: FrozenColor = FrozenColor()
    scale: float = 1.0


def test_frozen_dataclass_is_rejected():
    reg = PreferenceRegistry()
    with pytest.raises(RegistrationError, match="frozen"):
        reg.register(FrozenZoom)
    assert len(reg) == 0


def test_frozen_nested_dataclass_is_rejected():
    with pytest.raises(RegistrationError, match="FrozenColor"):
        PreferenceRegistry().register(UsesFrozenColor)
