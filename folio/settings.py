#!/usr/bin/env python3
"""
Settings loader for Folio.
Supports configuration from folio.yml, folio.yaml, or folio.json files.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional


class FolioSettings:
    """Load and manage Folio configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'output': 'output',
        'content': 'content',
        'templates': 'templates',
        'assets': 'assets',
        'blog_slug': 'blog',
        'site_title': None,
        'site_tagline': None,
        'site_url': None,
        'drafts': False,
        'strict_links': True,
        'port': 8000,
        'log_dir': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['folio.yml', 'folio.yaml', 'folio.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            try:
                loaded_settings = self._load_config_file(config_file)
                if loaded_settings:
                    unknown = sorted(set(loaded_settings) - set(self.DEFAULT_SETTINGS))
                    if unknown:
                        print(f"Warning: Ignoring unknown settings in {os.path.basename(config_file)}: {', '.join(unknown)}")
                    self.settings.update({k: v for k, v in loaded_settings.items() if k in self.DEFAULT_SETTINGS})
                    print(f"Loaded configuration from: {os.path.relpath(config_file)}")
            except (ValueError, OSError) as e:
                print(f"Warning: Failed to load config file {config_file}: {e}")

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        if file_format not in ['yml', 'yaml', 'json']:
            raise ValueError(f"Unsupported config file format: {file_format}")

        filename = f'folio.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        with open(config_path, 'w', encoding='utf-8') as f:
            if file_format in ['yml', 'yaml']:
                f.write("# Folio Configuration File\n\n")
                f.write("# Site information\n")
                f.write("site_url: https://example.github.io\n")
                f.write("site_title: My Portfolio\n")
                f.write("site_tagline: Notes on software\n\n")
                f.write("# Build settings\n")
                f.write("output: output\n")
                f.write("content: content\n")
                f.write("templates: templates\n")
                f.write("assets: assets\n")
                f.write("blog_slug: blog\n\n")
                f.write("# Authoring\n")
                f.write("drafts: false        # include content/drafts in the build\n")
                f.write("strict_links: true   # fail on post:/page: links to missing documents\n\n")
                f.write("# Preview server\n")
                f.write("port: 8000\n\n")
                f.write("# Logging\n")
                f.write("log_dir: logs\n")
            elif file_format == 'json':
                sample_config = self.DEFAULT_SETTINGS.copy()
                sample_config.update({
                    'site_url': 'https://example.github.io',
                    'site_title': 'My Portfolio',
                    'site_tagline': 'Notes on software',
                })
                json.dump(sample_config, f, indent=2)

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        for key, value in args_dict.items():
            if value is not None and key in self.DEFAULT_SETTINGS:
                merged[key] = value

        return merged
