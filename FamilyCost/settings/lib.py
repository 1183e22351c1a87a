"""Settings library for the remote store, sync and ledger configuration.

Provides:
    - Schema validation and enforcement for settings.json structure.
    - Loading, saving, reverting, and managing application settings.
    - Application paths for the settings file and the local cache database.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List

from PySide6 import QtCore, QtWidgets

from ..status import status

app_name: str = 'FamilyCost'

METADATA_KEYS: List[str] = [
    'name',
    'locale',
    'timezone',
    'loess_fraction',
]

SETTINGS_SCHEMA: Dict[str, Any] = {
    'remote': {
        'type': dict,
        'required': True,
        'item_schema': {
            'url': {'type': str, 'required': True},
            'bucket': {'type': str, 'required': True},
            'key': {'type': str, 'required': True},
        }
    },
    'sync': {
        'type': dict,
        'required': True,
        'item_schema': {
            'interval': {'type': (int, float), 'required': True, 'min': 1},
            'max_retries': {'type': int, 'required': True, 'min': 0},
            'retry_delay': {'type': (int, float), 'required': True, 'min': 0},
            'timeout': {'type': (int, float), 'required': True, 'min': 1},
        }
    },
    'units': {
        'type': list,
        'required': True,
        'value_type': str,
    },
    'auth': {
        'type': dict,
        'required': True,
        'item_schema': {
            'admin_email': {'type': str, 'required': True},
            'admin_password': {'type': str, 'required': True},
        }
    },
    'metadata': {
        'type': dict,
        'required': True,
        'required_keys': METADATA_KEYS,
        'item_schema': {
            'name': {'type': str, 'required': True},
            'locale': {'type': str, 'required': True},
            'timezone': {'type': str, 'required': True},
            'loess_fraction': {'type': float, 'required': True},
        }
    },
}


def _validate_items(section: str, section_dict: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate the fields of a dict section against its item schema.

    Args:
        section: Name of the section, used in error messages.
        section_dict: The section data.
        item_schema: Dict describing required fields, types and minimum values.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a required field is missing or below its minimum.
    """
    logging.debug(f'Validating "{section}" section.')
    for field, field_specs in item_schema.items():
        if field_specs['required'] and field not in section_dict:
            msg = f'Section "{section}" missing "{field}".'
            logging.error(msg)
            raise ValueError(msg)
        if field not in section_dict:
            continue

        v = section_dict[field]
        # bool is an int subclass but never a valid number here
        if isinstance(v, bool) or not isinstance(v, field_specs['type']):
            msg = (
                f'Section "{section}" field "{field}" must be {field_specs["type"]}, '
                f'got {type(v)}.'
            )
            logging.error(msg)
            raise TypeError(msg)

        if 'min' in field_specs and v < field_specs['min']:
            msg = f'Section "{section}" field "{field}" must be >= {field_specs["min"]}, got {v}.'
            logging.error(msg)
            raise ValueError(msg)


def _validate_units(units: List[Any]) -> None:
    """Validate the 'units' section: a non-empty list of unique unit names.

    Raises:
        TypeError: If a unit name is not a string.
        ValueError: If the list is empty or contains duplicates or blank names.
    """
    logging.debug('Validating "units" section.')
    if not units:
        msg = '"units" must not be empty.'
        logging.error(msg)
        raise ValueError(msg)
    for unit in units:
        if not isinstance(unit, str):
            msg = f'Unit "{unit}" must be a string.'
            logging.error(msg)
            raise TypeError(msg)
        if not unit.strip():
            msg = 'Unit names must not be blank.'
            logging.error(msg)
            raise ValueError(msg)
    if len(set(units)) != len(units):
        msg = f'Unit names must be unique, got {units}.'
        logging.error(msg)
        raise ValueError(msg)


class ConfigPaths:
    """Manage application file paths and ensure the default template and directories exist.

    This class initializes paths for the configuration template, the local cache database
    and the user settings. It verifies the presence of the template and prepares
    the default configuration file by copying it into the user data directory.
    """

    def __init__(self) -> None:
        # Set the application name and organization
        QtWidgets.QApplication.setApplicationName(app_name)
        QtWidgets.QApplication.setOrganizationName('')
        logging.debug(f'Setting application name: {app_name}')

        # Get the app data directory
        p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
        app_data_dir = pathlib.Path(p)
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.template_dir: pathlib.Path = pathlib.Path(__file__).parent.parent / 'config'
        self.settings_template: pathlib.Path = self.template_dir / 'settings.json.template'

        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.db_dir: pathlib.Path = self.config_dir / 'db'
        self.export_dir: pathlib.Path = app_data_dir / 'export'

        self.settings_path: pathlib.Path = self.config_dir / 'settings.json'
        self.db_path: pathlib.Path = self.db_dir / 'cache.db'

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify the template exists and prepare configuration directories and files.

        Raises:
            FileNotFoundError: If the template directory or file is missing.
        """
        logging.debug(f'Verifying required directories and templates in {self.template_dir}')
        if not self.template_dir.exists():
            msg: str = f'Missing template directory: {self.template_dir}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        if not self.settings_template.exists():
            msg = f'Missing settings template: {self.settings_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)

        for d in (self.config_dir, self.db_dir, self.export_dir):
            if not d.exists():
                logging.debug(f'Creating directory: {d}')
                d.mkdir(parents=True, exist_ok=True)

        # Ensure a valid config exists even if we haven't yet set it up
        if not self.settings_path.exists():
            logging.debug(f'Copying default settings from template to {self.settings_path}')
            shutil.copy(self.settings_template, self.settings_path)

    def revert_settings_to_template(self) -> None:
        """Restore settings.json from the default template file.

        Raises:
            FileNotFoundError: If the settings template file is missing.
        """
        logging.debug(f'Reverting settings to template: {self.settings_template}')
        if not self.settings_template.exists():
            msg: str = f'Settings template not found: {self.settings_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        shutil.copy(self.settings_template, self.settings_path)


class SettingsAPI(ConfigPaths):
    """
    Provides an interface to get/set/revert/save settings.json sections.
    Metadata values are also reachable with dictionary-style access.
    """

    def __init__(self, settings_path: Optional[str] = None) -> None:
        """Initialize SettingsAPI and load the settings data.

        Args:
            settings_path: Optional path to a custom settings.json file.
        """
        super().__init__()

        self.settings_path: pathlib.Path = pathlib.Path(settings_path) if settings_path else self.settings_path

        self._signals_blocked: bool = False

        self.settings_data: Dict[str, Any] = {}
        for k in SETTINGS_SCHEMA.keys():
            self.settings_data[k] = {}

        self.init_data()

    def __getitem__(self, key: str) -> Any:
        """Retrieve a metadata value using dictionary-style access.

        Args:
            key: Metadata key to retrieve.

        Returns:
            Value stored for the metadata key.

        Raises:
            KeyError: If key is not in METADATA_KEYS.
            RuntimeError: If metadata section is missing from settings_data.
        """
        if key not in METADATA_KEYS:
            raise KeyError(f'Invalid metadata key: {key}, must be one of {METADATA_KEYS}')

        if 'metadata' not in self.settings_data:
            raise RuntimeError('Malformed settings data, missing "metadata" section.')

        _type = SETTINGS_SCHEMA['metadata']['item_schema'][key]['type']
        v = self.settings_data['metadata'].get(key)

        if not isinstance(v, _type):
            logging.error(f'Metadata key "{key}" is not of type {_type}, got {type(v)}.')
            return None

        return v

    def __setitem__(self, key: str, value: Any) -> None:
        """Assign a metadata value using dictionary-style access and persist it.

        Args:
            key: Metadata key to set.
            value: Value to assign to the metadata key.

        Raises:
            KeyError: If key is not in METADATA_KEYS.
            RuntimeError: If metadata section is missing.
            ValueError: If the value cannot be converted to the expected type.
        """
        if key not in METADATA_KEYS:
            raise KeyError(f'Invalid metadata key: {key}, must be one of {METADATA_KEYS}')

        if 'metadata' not in self.settings_data:
            raise RuntimeError('Malformed settings data, missing "metadata" section.')

        _type = SETTINGS_SCHEMA['metadata']['item_schema'][key]['type']
        if not isinstance(value, _type):
            logging.warning(f'Metadata key "{key}" is not of type {_type}, got {type(value)}.')

            # Try to convert to the expected type
            try:
                value = _type(value)
            except (TypeError, ValueError):
                logging.error(f'Cannot convert "{value}" to {_type}.')
                raise

        self.settings_data['metadata'][key] = value
        self.save_section('metadata')

        if self._signals_blocked:
            return

        from ..ui.actions import signals
        signals.metadataChanged.emit(key, value)

    def block_signals(self, v: bool) -> None:
        """Enable or disable emission of configuration change signals.

        Args:
            v: True to block signals, False to allow signals to emit.
        """
        self._signals_blocked = v

    @QtCore.Slot()
    def init_data(self) -> None:
        """Reload settings data, emitting update signals."""
        self.load_settings()

        if self._signals_blocked:
            return

        from ..ui.actions import signals
        for section in SETTINGS_SCHEMA.keys():
            if section == 'metadata':
                continue
            signals.configSectionChanged.emit(section)

        for k, v in self.settings_data.get('metadata', {}).items():
            signals.metadataChanged.emit(k, v)

    def load_settings(self) -> Dict[str, Any]:
        """Load settings.json from disk and validate against schema.

        Returns:
            The loaded settings data dictionary.

        Raises:
            status.SettingsNotFoundException: If settings.json file is missing.
            status.SettingsInvalidException: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading settings from "{self.settings_path}"')
        if not self.settings_path.exists():
            raise status.SettingsNotFoundException

        try:
            with self.settings_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_settings_data(data=data)
            self.settings_data = data
            return self.settings_data

        except status.SettingsInvalidException:
            raise
        except Exception as ex:
            raise status.SettingsInvalidException from ex

    def validate_settings_data(self, data: Dict[str, Any] = None) -> None:
        """Validate settings data against the defined SETTINGS_SCHEMA.

        Args:
            data (dict, optional): Settings data to validate. Defaults to self.settings_data.

        Raises:
            RuntimeError: If data is empty.
            status.SettingsInvalidException: If a required section is missing or has the wrong type.
            TypeError: If a field has the wrong type.
            ValueError: If a field is missing or out of range.
        """
        if data is None:
            data = self.settings_data
        if not data:
            raise RuntimeError('Settings data is empty.')

        logging.debug('Validating settings data against schema.')
        for field, specs in SETTINGS_SCHEMA.items():
            if specs.get('required') and field not in data:
                msg: str = f'Missing required field: {field}'
                raise status.SettingsInvalidException(msg)

            if not isinstance(data[field], specs['type']):
                msg = f'Field "{field}" must be {specs["type"]}, got {type(data[field])}.'
                raise status.SettingsInvalidException(msg)

            if field == 'units':
                _validate_units(data[field])
            else:
                _validate_items(field, data[field], specs['item_schema'])

        logging.debug('Settings data is valid.')

    def get_section(self, section_name: str) -> Any:
        """Retrieve a copy of configuration data for a settings section.

        Args:
            section_name: Section name, a key of SETTINGS_SCHEMA.

        Returns:
            A copy of the requested section data.

        Raises:
            KeyError: If section_name is not in settings_data.
        """
        return self.settings_data[section_name].copy()

    def set_section(self, section_name: str, new_data: Any) -> None:
        """Replace and persist a configuration section.

        The previous value is restored when the new data fails validation.

        Args:
            section_name: Section to update.
            new_data: New data for the section.

        Raises:
            ValueError: If section_name is unrecognized or the data is invalid.
            TypeError: If the data has the wrong type.
        """
        if section_name not in self.settings_data:
            msg: str = f'Unknown section_name for set: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        current_section_data = self.settings_data[section_name]
        if not isinstance(new_data, SETTINGS_SCHEMA[section_name]['type']):
            msg = f'{section_name} must be {SETTINGS_SCHEMA[section_name]["type"]}.'
            logging.error(msg)
            raise TypeError(msg)

        self.settings_data[section_name] = new_data
        try:
            self.validate_settings_data()
        except (ValueError, TypeError) as e:
            logging.error(f'Validation error on set_section("{section_name}"): {e}')
            self.settings_data[section_name] = current_section_data
            raise

        self.save_section(section_name)

        if self._signals_blocked:
            return

        from ..ui.actions import signals
        signals.configSectionChanged.emit(section_name)

    def reload_section(self, section_name: str) -> None:
        """Reload a configuration section from its source file and emit change signal.

        Args:
            section_name: Section to reload.

        Raises:
            ValueError: If section_name is unrecognized.
            JSONDecodeError: If parsing settings.json fails.
            status.SettingsInvalidException: If reloaded data fails validation.
        """
        if section_name not in self.settings_data:
            msg: str = f'Unknown section_name for reload: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        logging.debug(f'Reloading section "{section_name}" from disk.')
        try:
            with self.settings_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_settings_data(data=data)
            self.settings_data[section_name] = data[section_name]
        except (ValueError, TypeError, json.JSONDecodeError) as e:
            logging.error(f'Failed to reload section "{section_name}": {e}')
            raise

        from ..ui.actions import signals
        signals.configSectionChanged.emit(section_name)

    def revert_section(self, section_name: str) -> None:
        """Revert a configuration section to its template default and save.

        Args:
            section_name: Section to revert.

        Raises:
            ValueError: If section_name is invalid or not present in the template.
        """
        if section_name not in self.settings_data:
            msg: str = f'Unknown section_name for revert: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.settings_template.open('r', encoding='utf-8') as f:
            template_data: Dict[str, Any] = json.load(f)

        if section_name not in template_data:
            msg = f'No template-based revert logic for section "{section_name}".'
            logging.error(msg)
            raise ValueError(msg)

        self.settings_data[section_name] = template_data[section_name]
        self.save_section(section_name)

        from ..ui.actions import signals
        signals.configSectionChanged.emit(section_name)

    def save_section(self, section_name: str) -> None:
        """Persist a single configuration section to settings.json.

        Args:
            section_name: The section to save.

        Raises:
            ValueError: If section_name is not recognized.
        """
        if section_name not in self.settings_data:
            msg: str = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.settings_path.open('r', encoding='utf-8') as f:
            original_data: Dict[str, Any] = json.load(f)

        if section_name not in original_data:
            msg = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        new_data: Dict[str, Any] = original_data.copy()
        new_data[section_name] = self.settings_data[section_name]

        logging.debug(f'Saving section "{section_name}" to "{self.settings_path}"')
        with self.settings_path.open('w', encoding='utf-8') as f:
            json.dump(new_data, f, indent=4, ensure_ascii=False)


settings: SettingsAPI = SettingsAPI()
