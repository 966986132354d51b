"""
Tests for the configuration module
"""
import unittest
import tempfile
import os
import yaml
from robolly_generator.config import Config
from robolly_generator.services.errors import ConfigError


class TestConfig(unittest.TestCase):
    """Tests for the Config class"""

    def test_default_configuration(self):
        """Defaults are in place without a file"""
        config = Config()

        self.assertIsNone(config.get('api_key'))
        self.assertEqual(config.get('api_base_url'), 'https://api.robolly.com')
        self.assertEqual(config.get('output_dir'), './output')
        self.assertEqual(config.get('pagination.max_pages'), 100)
        self.assertEqual(config.get('movie.attempts'), 5)

    def test_get_with_default_value(self):
        """get() falls back to the given default"""
        config = Config()

        self.assertEqual(config.get('non_existent_key', 'default_value'), 'default_value')
        self.assertEqual(config.get('image.missing', 'x'), 'x')
        self.assertEqual(config.get('output_dir.nested', 'y'), 'y')
        self.assertIsNone(config.get('non_existent_key'))

    def test_get_all_returns_a_copy(self):
        """get_all() cannot be used to mutate the configuration"""
        config = Config()
        all_config = config.get_all()
        all_config['image']['format'] = '.png'

        self.assertEqual(config.get('image.format'), '.jpg')

    def test_defaults_are_not_shared(self):
        """Instances never share the default dictionaries"""
        first = Config()
        first.update_from_args({'movie.attempts': 9})

        self.assertEqual(Config().get('movie.attempts'), 5)

    def test_load_from_valid_yaml_file(self):
        """Values from YAML override defaults"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            yaml.dump({
                'api_key': 'from-yaml',
                'output_dir': './renders',
                'video': {'fps': 60},
            }, f)
            temp_file = f.name

        try:
            config = Config(config_file=temp_file)

            self.assertEqual(config.get('api_key'), 'from-yaml')
            self.assertEqual(config.get('output_dir'), './renders')
            self.assertEqual(config.get('video.fps'), 60)
            self.assertEqual(config.get('video.duration'), 5)
        finally:
            os.unlink(temp_file)

    def test_load_from_nonexistent_file(self):
        """A missing file leaves the defaults untouched"""
        config = Config(config_file='/path/that/does/not/exist.yaml')

        self.assertEqual(config.get('output_dir'), './output')

    def test_load_from_empty_yaml_file(self):
        """An empty file leaves the defaults untouched"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write('')
            temp_file = f.name

        try:
            config = Config(config_file=temp_file)
            self.assertEqual(config.get('timeout'), 30)
        finally:
            os.unlink(temp_file)

    def test_load_invalid_yaml_raises(self):
        """Broken YAML is reported as ConfigError"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write('api_key: [unclosed\n')
            temp_file = f.name

        try:
            with self.assertRaises(ConfigError):
                Config(config_file=temp_file)
        finally:
            os.unlink(temp_file)

    def test_non_mapping_yaml_raises(self):
        """A YAML list is not a configuration"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            yaml.dump(['a', 'b'], f)
            temp_file = f.name

        try:
            with self.assertRaises(ConfigError):
                Config(config_file=temp_file)
        finally:
            os.unlink(temp_file)


if __name__ == '__main__':
    unittest.main()
