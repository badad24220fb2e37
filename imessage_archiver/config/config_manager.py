"""Configuration management for the iMessage archiver."""

import os
import yaml
from typing import Any, Dict, Optional
from .config_validator import ConfigValidator
from ..core.exporter import DEFAULT_COPY_METHOD, DEFAULT_EXPORT_FORMAT, DEFAULT_EXPORTER_BINARY


class ConfigManager:
    """Loads, validates and fills defaults for the archiver configuration."""
    
    DEFAULT_CONFIG_LOCATIONS = [
        os.path.expanduser("~/.config/imessage-archiver/config.yaml"),
        os.path.expanduser("~/.config/imessage-archiver/config.yml"),
        "config.yaml",
        "config.yml",
        "/etc/imessage-archiver/config.yaml",
    ]
    
    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.
        
        Args:
            config_path: Optional path to config file. If not provided,
                        will search in default locations.
        """
        self.config_path = config_path
        self.config_data: Dict[str, Any] = {}
        self.loaded_from: Optional[str] = None
        self.validator = ConfigValidator()
        
    def load_config(self) -> Dict[str, Any]:
        """Load configuration from file.
        
        Returns:
            Dictionary containing configuration data.
            
        Raises:
            FileNotFoundError: If config file cannot be found.
            ValueError: If config file is invalid.
        """
        config_file = self._find_config_file()
        
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_file}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading config file {config_file}: {e}")
        
        self.validator.validate(self.config_data)
        self._set_defaults()
        self.loaded_from = config_file
        
        return self.config_data
    
    def _find_config_file(self) -> str:
        """Find configuration file in default locations.
        
        Returns:
            Path to configuration file.
            
        Raises:
            FileNotFoundError: If no config file is found.
        """
        if self.config_path:
            if os.path.exists(self.config_path):
                return self.config_path
            else:
                raise FileNotFoundError(f"Config file not found: {self.config_path}")
        
        for location in self.DEFAULT_CONFIG_LOCATIONS:
            if os.path.exists(location):
                return location
        
        raise FileNotFoundError(
            f"Configuration file not found in any of these locations:\n" +
            "\n".join(f"  - {loc}" for loc in self.DEFAULT_CONFIG_LOCATIONS)
        )
    
    def _set_defaults(self):
        """Fill optional values; zero or missing days_to_check means the default."""
        data = self.config_data
        data['ssh_private_key_path'] = os.path.expanduser(data['ssh_private_key_path'])
        data['logging_level'] = str(data.get('logging_level') or 'info').lower()
        data['export_format'] = data.get('export_format') or DEFAULT_EXPORT_FORMAT
        data['copy_method'] = data.get('copy_method') or DEFAULT_COPY_METHOD
        data['exporter_binary'] = data.get('exporter_binary') or DEFAULT_EXPORTER_BINARY
        if not data.get('days_to_check'):
            data['days_to_check'] = 7
        if data.get('local_export_path'):
            data['local_export_path'] = os.path.expanduser(data['local_export_path'])
        else:
            data['local_export_path'] = None
        
        logging_defaults = {
            'file': None,
            'max_size_mb': 10,
            'backup_count': 5
        }
        logging_section = data.setdefault('logging', {})
        for key, value in logging_defaults.items():
            logging_section.setdefault(key, value)
    
    def get_remote_config(self) -> Dict[str, Any]:
        """Get remote host configuration.
        
        Returns:
            Dictionary with remote_user, remote_host, ssh_private_key_path
            and remote_archive_path.
        """
        keys = ['remote_user', 'remote_host', 'ssh_private_key_path', 'remote_archive_path']
        return {key: self.config_data.get(key) for key in keys}
    
    def get_export_config(self) -> Dict[str, Any]:
        """Get export configuration.
        
        Returns:
            Dictionary with export_format, copy_method, exporter_binary,
            days_to_check and local_export_path.
        """
        keys = ['export_format', 'copy_method', 'exporter_binary', 'days_to_check', 'local_export_path']
        return {key: self.config_data.get(key) for key in keys}
    
    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration.
        
        Returns:
            Logging configuration dictionary including the level.
        """
        logging_config = dict(self.config_data.get('logging', {}))
        logging_config['level'] = self.config_data.get('logging_level', 'info')
        return logging_config
