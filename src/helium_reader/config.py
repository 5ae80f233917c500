import dataclasses
import json
import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import helium_reader.settings as settings
from helium_reader.models import AppData, Key

logger = logging.getLogger(__name__)

CONFIG_SECTIONS = ("Setting", "Keymap")
# zero or negative would make a book unopenable
POSITIVE_SETTINGS = {"LocationChars"}


class Config(AppData):
    """
    User configuration merged over the defaults in settings.py.

    A missing configuration.json is created with the defaults.
    Unreadable files and invalid values are logged and replaced
    by defaults, a broken config never keeps a book from opening.
    """

    def __init__(self, filepath: Optional[str] = None):
        self._filepath = filepath
        default_settings = dataclasses.asdict(settings.Settings())
        default_keymaps = dataclasses.asdict(settings.CfgDefaultKeymaps())

        cfg_user = self.load()
        if cfg_user is None:
            self.save({"Setting": default_settings, "Keymap": default_keymaps})
            cfg_user = {section: {} for section in CONFIG_SECTIONS}

        setting_dict = Config.validated(
            Config.update_dict(default_settings, cfg_user["Setting"]), default_settings
        )
        keymap_dict = Config.validated(
            Config.update_dict(default_keymaps, cfg_user["Keymap"]), default_keymaps
        )

        self.setting = settings.Settings(**setting_dict)
        self.keymap = Config.build_keymap(keymap_dict)
        # to build help menu text
        self.keymap_user_dict = keymap_dict

    @property
    def filepath(self) -> str:
        if self._filepath:
            return self._filepath
        return os.path.join(self.prefix, "configuration.json") if self.prefix else os.devnull

    def load(self) -> Optional[Dict[str, Dict[str, Any]]]:
        """Returns None when there is no configuration file yet"""
        if not os.path.isfile(self.filepath):
            return None
        try:
            with open(self.filepath) as f:
                cfg_user = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", self.filepath, e)
            cfg_user = {}

        if not isinstance(cfg_user, dict):
            logger.warning("Ignoring %s, expected a JSON object", self.filepath)
            cfg_user = {}
        return {
            section: cfg_user[section] if isinstance(cfg_user.get(section), dict) else {}
            for section in CONFIG_SECTIONS
        }

    def save(self, cfg_dict: Mapping[str, Any]) -> None:
        try:
            with open(self.filepath, "w") as file:
                json.dump(cfg_dict, file, indent=2)
        except OSError as e:
            logger.warning("Cannot write default configuration to %s: %s", self.filepath, e)

    @staticmethod
    def validated(
        values: Mapping[str, Union[str, int, bool]], defaults: Mapping[str, Union[str, int, bool]]
    ) -> Dict[str, Union[str, int, bool]]:
        """Returns a copy of `values` where values of the wrong type,
        empty keys and non-positive sizes are reset to their default"""

        result = dict(values)
        for name, value in values.items():
            default = defaults[name]
            if (
                type(value) is not type(default)
                or value == ""
                or (name in POSITIVE_SETTINGS and value <= 0)
            ):
                logger.warning("Invalid %s=%r in configuration, using %r", name, value, default)
                result[name] = default
        return result

    @staticmethod
    def build_keymap(keymap_dict: Mapping[str, str]) -> settings.Keymap:
        """User keys first, followed by the builtin keys of the same command"""
        keymap_builtin_dict = dataclasses.asdict(settings.CfgBuiltinKeymaps())
        user_keys = {k: tuple(v) for k, v in keymap_dict.items()}
        return settings.Keymap(
            **{
                k: tuple(Key(i) for i in v)
                for k, v in Config.update_keys_tuple(user_keys, keymap_builtin_dict).items()
            }
        )

    @staticmethod
    def update_dict(
        old_dict: Mapping[str, Union[str, int, bool]],
        new_dict: Mapping[str, Union[str, int, bool]],
        place_new=False,
    ) -> Dict[str, Union[str, int, bool]]:
        """Returns a copy of `old_dict` after updating it with `new_dict`"""
        return {
            **old_dict,
            **{k: v for k, v in new_dict.items() if k in old_dict or place_new},
        }

    @staticmethod
    def update_keys_tuple(
        old_keys: Mapping[str, Tuple[Union[str, int], ...]],
        new_keys: Mapping[str, Tuple[Union[str, int], ...]],
        place_new: bool = False,
    ) -> Dict[str, Tuple[Union[str, int], ...]]:
        """Returns a copy of `old_keys` with `new_keys` appended,
        keeping the first occurrence of every key"""
        result = dict(old_keys)
        for k, v in new_keys.items():
            if k in result or place_new:
                result[k] = tuple(dict.fromkeys(result.get(k, ()) + v))
        return result
