"""Configuration validation for the iMessage archiver."""

import os
from typing import Any, Dict

from ..core.exporter import COPY_METHODS, EXPORT_FORMATS


class ConfigValidator:
    """Validates archiver configuration."""
    
    REQUIRED_FIELDS = ['remote_user', 'ssh_private_key_path', 'remote_host', 'remote_archive_path']
    VALID_LOG_LEVELS = ['debug', 'info', 'warn', 'warning', 'error']
    
    def validate(self, config: Dict[str, Any]) -> None:
        """Validate configuration data.
        
        Args:
            config: Configuration dictionary to validate.
            
        Raises:
            ValueError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a mapping")
        
        self._validate_required(config)
        self._validate_ssh_key(config['ssh_private_key_path'])
        self._validate_export_settings(config)
        self._validate_logging(config)
    
    def _validate_required(self, config: Dict[str, Any]) -> None:
        """Check that every required field is present and non-empty.
        
        Raises:
            ValueError: Naming the first missing field.
        """
        for field in self.REQUIRED_FIELDS:
            value = config.get(field)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{field} is required in config")
    
    def _validate_ssh_key(self, key_path: str) -> None:
        if not os.path.exists(os.path.expanduser(key_path)):
            raise ValueError(f"ssh private key file does not exist: {key_path}")
    
    def _validate_export_settings(self, config: Dict[str, Any]) -> None:
        export_format = config.get('export_format')
        if export_format is not None and export_format not in EXPORT_FORMATS:
            raise ValueError(
                f"invalid export_format: {export_format} (must be one of: {', '.join(EXPORT_FORMATS)})"
            )
        
        copy_method = config.get('copy_method')
        if copy_method is not None and copy_method not in COPY_METHODS:
            raise ValueError(
                f"invalid copy_method: {copy_method} (must be one of: {', '.join(COPY_METHODS)})"
            )
        
        days = config.get('days_to_check')
        if days is not None:
            if isinstance(days, bool) or not isinstance(days, int) or days < 0:
                raise ValueError(f"invalid days_to_check: {days} (must be a positive integer)")
        
        binary = config.get('exporter_binary')
        if binary is not None and (not isinstance(binary, str) or not binary.strip()):
            raise ValueError("exporter_binary cannot be empty")
    
    def _validate_logging(self, config: Dict[str, Any]) -> None:
        level = config.get('logging_level')
        if level is not None and str(level).lower() not in self.VALID_LOG_LEVELS:
            raise ValueError(
                f"invalid logging_level: {level} (must be one of: debug, info, warn, error)"
            )
        
        logging_section = config.get('logging')
        if logging_section is not None and not isinstance(logging_section, dict):
            raise ValueError("logging section must be a mapping")
