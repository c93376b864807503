"""
Tests for pipeline configuration parsing.
"""

import pytest
import yaml

from src.pipeline.config_parser import (
    PipelineConfig,
    ClassifierConfig,
    EvaluationConfig,
    SplitConfig,
    DEFAULT_CONFIG_PATH,
    all_inputs_selected,
    missing_inputs,
    load_yaml_config,
    merge_configs,
    dict_to_config,
    parse_args_to_config,
)


class TestDataclasses:
    """Test configuration dataclasses."""

    def test_defaults(self):
        """Test default values."""
        config = PipelineConfig()
        assert config.command == 'evaluate'
        assert config.evaluation.num_samples == 3
        assert config.evaluation.num_workers == 1
        assert config.split.train_ratio == 0.6
        assert config.output.confusion_matrix_name == 'confusion_matrix.csv'
        assert config.output.report_name == 'report.html'
        assert config.output.samples_dir_name == 'samples'

    def test_unknown_backend(self):
        """Test invalid classifier backend."""
        with pytest.raises(ValueError, match="backend"):
            ClassifierConfig(backend='onnx')

    def test_evaluation_ranges(self):
        """Test sample count and worker count are validated."""
        with pytest.raises(ValueError, match="num_samples"):
            EvaluationConfig(num_samples=-1)
        with pytest.raises(ValueError, match="num_workers"):
            EvaluationConfig(num_workers=0)
        assert EvaluationConfig(num_samples=0).num_samples == 0

    def test_split_ratios(self):
        """Test split ratios must sum to one."""
        with pytest.raises(ValueError):
            SplitConfig(train_ratio=0.8, val_ratio=0.2, test_ratio=0.2)

    def test_seed_for(self):
        """Test section seed falls back to the global seed."""
        config = PipelineConfig(seed=5)
        assert config.seed_for(None) == 5
        assert config.seed_for(9) == 9


class TestInputSelection:
    """Test the precondition check for running a command."""

    def test_nothing_selected(self):
        """Test an empty evaluate config is incomplete."""
        config = PipelineConfig()
        assert not all_inputs_selected(config)
        assert missing_inputs(config) == [
            'dataset.root', 'output.output_dir', 'classifier.predictions_path'
        ]

    def test_evaluate_with_predictions(self):
        """Test complete predictions-backed evaluate config."""
        config = dict_to_config({
            'dataset': {'root': 'data'},
            'classifier': {'predictions_path': 'preds.json'},
            'output': {'output_dir': 'out'},
        })
        assert all_inputs_selected(config)

    def test_torchscript_needs_model_and_labels(self):
        """Test torchscript backend requires both files."""
        config = dict_to_config({
            'dataset': {'root': 'data'},
            'classifier': {'backend': 'torchscript', 'model_path': 'model.pt'},
            'output': {'output_dir': 'out'},
        })
        assert missing_inputs(config) == ['classifier.labels_path']

    def test_split_needs_roots(self):
        """Test split command requires all three destinations."""
        config = dict_to_config({
            'command': 'split',
            'dataset': {'root': 'data'},
            'split': {'train_root': 't'},
        })
        assert missing_inputs(config) == ['split.val_root', 'split.test_root']


class TestYamlMerge:
    """Test YAML loading and merging."""

    def test_default_config_ships(self):
        """Test the packaged default config loads."""
        config_dict = load_yaml_config(str(DEFAULT_CONFIG_PATH))
        config = dict_to_config(config_dict)
        assert config.classifier.backend == 'predictions'
        assert config.classifier.mean == [0.485, 0.456, 0.406]

    def test_missing_config(self, tmp_path):
        """Test missing config file."""
        with pytest.raises(FileNotFoundError):
            load_yaml_config(str(tmp_path / 'missing.yaml'))

    def test_merge_nested(self):
        """Test nested overrides keep untouched keys and skip None."""
        base = {'evaluation': {'num_samples': 3, 'num_workers': 2}, 'seed': 1}
        merged = merge_configs(base, {'evaluation': {'num_samples': 5, 'num_workers': None}, 'seed': None})
        assert merged == {'evaluation': {'num_samples': 5, 'num_workers': 2}, 'seed': 1}


class TestParseArgs:
    """Test command-line parsing."""

    def test_evaluate_predictions(self):
        """Test evaluate command with a predictions file."""
        config = parse_args_to_config([
            'evaluate', '--dataset', 'data', '--predictions', 'preds.csv',
            '--output', 'out', '--samples', '5', '--workers', '2', '--seed', '3', '--no-viz'
        ])
        assert config.command == 'evaluate'
        assert config.dataset.root == 'data'
        assert config.classifier.backend == 'predictions'
        assert config.classifier.predictions_path == 'preds.csv'
        assert config.output.output_dir == 'out'
        assert config.evaluation.num_samples == 5
        assert config.evaluation.num_workers == 2
        assert config.evaluation.seed == 3
        assert config.evaluation.visualizations is False

    def test_evaluate_model_selects_torchscript(self):
        """Test --model switches the backend."""
        config = parse_args_to_config([
            'evaluate', '--dataset', 'data', '--model', 'm.pt', '--labels', 'l.txt',
            '--output', 'out', '--device', 'cpu'
        ])
        assert config.classifier.backend == 'torchscript'
        assert config.classifier.model_path == 'm.pt'
        assert config.classifier.labels_path == 'l.txt'

    def test_predictions_and_model_exclusive(self):
        """Test both classifier sources cannot be given."""
        with pytest.raises(SystemExit):
            parse_args_to_config([
                'evaluate', '--predictions', 'p.json', '--model', 'm.pt'
            ])

    def test_cli_overrides_yaml(self, tmp_path):
        """Test priority CLI > YAML > defaults."""
        config_path = tmp_path / 'config.yaml'
        config_path.write_text(yaml.safe_dump({
            'dataset': {'root': 'yaml_data'},
            'evaluation': {'num_samples': 8, 'num_workers': 4},
        }))

        config = parse_args_to_config([
            'evaluate', '--config', str(config_path), '--samples', '2'
        ])
        assert config.dataset.root == 'yaml_data'
        assert config.evaluation.num_samples == 2
        assert config.evaluation.num_workers == 4
        assert config.evaluation.show_progress is True

    def test_split(self):
        """Test split command."""
        config = parse_args_to_config([
            'split', '--dataset', 'data', '--train', 't', '--val', 'v', '--test', 'x',
            '--seed', '7', '--no-clear', '--no-progress', '-v'
        ])
        assert config.command == 'split'
        assert (config.split.train_root, config.split.val_root, config.split.test_root) == ('t', 'v', 'x')
        assert config.split.seed == 7
        assert config.split.clear_destinations is False
        assert config.show_progress is False
        assert config.verbose is True

    def test_command_required(self):
        """Test a command must be given."""
        with pytest.raises(SystemExit):
            parse_args_to_config([])
