"""Configuration parser for the classifier evaluation pipeline.

Handles loading YAML config and merging with command-line arguments.
Command-line arguments have higher priority than config file values.
"""

import argparse
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.yaml'

CLASSIFIER_BACKENDS = ('predictions', 'torchscript')


@dataclass
class DatasetConfig:
    """Dataset location configuration."""
    root: Optional[str] = None
    extensions: List[str] = field(default_factory=lambda: ['.jpg', '.jpeg', '.png'])


@dataclass
class ClassifierConfig:
    """Classifier backend configuration."""
    backend: str = "predictions"
    # predictions backend
    predictions_path: Optional[str] = None
    # torchscript backend
    model_path: Optional[str] = None
    labels_path: Optional[str] = None
    image_size: int = 224
    mean: Optional[List[float]] = None
    std: Optional[List[float]] = None
    device: str = "cpu"

    def __post_init__(self):
        if self.backend not in CLASSIFIER_BACKENDS:
            raise ValueError(
                f"Unknown classifier backend '{self.backend}', "
                f"expected one of {CLASSIFIER_BACKENDS}"
            )


@dataclass
class EvaluationConfig:
    """Evaluation configuration."""
    num_samples: int = 3
    num_workers: int = 1
    show_progress: bool = True
    visualizations: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        if self.num_samples < 0:
            raise ValueError(f"num_samples must be >= 0, got {self.num_samples}")
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")


@dataclass
class SplitConfig:
    """Dataset split configuration."""
    train_root: Optional[str] = None
    val_root: Optional[str] = None
    test_root: Optional[str] = None
    train_ratio: float = 0.6
    val_ratio: float = 0.2
    test_ratio: float = 0.2
    clear_destinations: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        total_ratio = self.train_ratio + self.val_ratio + self.test_ratio
        if not 0.99 <= total_ratio <= 1.01:
            raise ValueError(f"Split ratios must sum to 1.0, got {total_ratio}")


@dataclass
class OutputConfig:
    """Output paths configuration."""
    output_dir: Optional[str] = None
    confusion_matrix_name: str = "confusion_matrix.csv"
    report_name: str = "report.html"
    samples_dir_name: str = "samples"
    summary_name: str = "summary.json"
    plot_name: str = "confusion_matrix.png"


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""
    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    command: str = "evaluate"
    seed: Optional[int] = None
    verbose: bool = False
    show_progress: bool = True

    def seed_for(self, section_seed: Optional[int]) -> Optional[int]:
        """Section seed if set, else the global seed."""
        return section_seed if section_seed is not None else self.seed


def missing_inputs(config: PipelineConfig) -> List[str]:
    """
    List the inputs the selected command still needs.

    Args:
        config: Merged pipeline configuration

    Returns:
        Names of missing settings (empty when the command can run)
    """
    missing = []
    if not config.dataset.root:
        missing.append('dataset.root')

    if config.command == 'split':
        for name in ('train_root', 'val_root', 'test_root'):
            if not getattr(config.split, name):
                missing.append(f'split.{name}')
        return missing

    if not config.output.output_dir:
        missing.append('output.output_dir')

    classifier = config.classifier
    if classifier.backend == 'predictions':
        if not classifier.predictions_path:
            missing.append('classifier.predictions_path')
    else:
        if not classifier.model_path:
            missing.append('classifier.model_path')
        if not classifier.labels_path:
            missing.append('classifier.labels_path')

    return missing


def all_inputs_selected(config: PipelineConfig) -> bool:
    """True when every input the selected command needs has been provided."""
    return not missing_inputs(config)


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f)

    return config_dict or {}


def merge_configs(base_config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override config into base config."""
    merged = base_config.copy()

    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        elif value is not None:  # Only override if value is not None
            merged[key] = value

    return merged


def dict_to_config(config_dict: Dict[str, Any]) -> PipelineConfig:
    """Convert dictionary to PipelineConfig dataclass."""
    return PipelineConfig(
        dataset=DatasetConfig(**(config_dict.get('dataset') or {})),
        classifier=ClassifierConfig(**(config_dict.get('classifier') or {})),
        evaluation=EvaluationConfig(**(config_dict.get('evaluation') or {})),
        split=SplitConfig(**(config_dict.get('split') or {})),
        output=OutputConfig(**(config_dict.get('output') or {})),
        command=config_dict.get('command', 'evaluate'),
        seed=config_dict.get('seed'),
        verbose=bool(config_dict.get('verbose', False)),
        show_progress=bool(config_dict.get('show_progress', True))
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', type=str, default=None,
                        help=f'Path to YAML configuration file (default: {DEFAULT_CONFIG_PATH.name})')
    parser.add_argument('--seed', type=int,
                        help='Random seed for reproducible sampling/splitting')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--no-progress', action='store_true',
                        help='Disable progress bars')


def create_arg_parser() -> argparse.ArgumentParser:
    """Create argument parser with evaluate and split subcommands."""
    parser = argparse.ArgumentParser(
        description="Image Classifier Evaluation Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate precomputed predictions
  python main.py evaluate --dataset data/pets --predictions preds.json --output results/pets

  # Evaluate a TorchScript model
  python main.py evaluate --dataset data/pets --model model.pt --labels labels.txt --output results/pets

  # Split a dataset 60/20/20
  python main.py split --dataset data/pets --train data/train --val data/val --test data/test --seed 42
        """
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    # Evaluate
    eval_parser = subparsers.add_parser('evaluate', help='Evaluate a classifier on a labeled image folder')
    _add_common_arguments(eval_parser)

    data_group = eval_parser.add_argument_group('Input')
    data_group.add_argument('--dataset', type=str,
                            help='Dataset root with one folder per class')
    data_group.add_argument('--output', '--output-dir', type=str, dest='output_dir',
                            help='Directory for the report, CSV and samples')

    clf_group = eval_parser.add_argument_group('Classifier')
    clf_source = clf_group.add_mutually_exclusive_group()
    clf_source.add_argument('--predictions', type=str,
                            help='Precomputed predictions (JSON or CSV)')
    clf_source.add_argument('--model', type=str,
                            help='TorchScript model file')
    clf_group.add_argument('--labels', type=str,
                           help='Labels file for the TorchScript model (one per line)')
    clf_group.add_argument('--image-size', type=int,
                           help='Model input size in pixels')
    clf_group.add_argument('--device', type=str, choices=['cuda', 'cpu', 'auto'],
                           help='Device for the TorchScript model')

    run_group = eval_parser.add_argument_group('Evaluation')
    run_group.add_argument('--samples', type=int,
                           help='Number of sample images to export')
    run_group.add_argument('--workers', type=int,
                           help='Parallel inference threads')
    run_group.add_argument('--no-viz', action='store_true',
                           help='Skip the confusion matrix plot')

    # Split
    split_parser = subparsers.add_parser('split', help='Split a labeled image folder into train/val/test')
    _add_common_arguments(split_parser)
    split_parser.add_argument('--dataset', type=str,
                              help='Dataset root with one folder per class')
    split_parser.add_argument('--train', type=str, help='Training split destination')
    split_parser.add_argument('--val', type=str, help='Validation split destination')
    split_parser.add_argument('--test', type=str, help='Test split destination')
    split_parser.add_argument('--train-ratio', type=float, help='Training fraction')
    split_parser.add_argument('--val-ratio', type=float, help='Validation fraction')
    split_parser.add_argument('--test-ratio', type=float, help='Test fraction')
    split_parser.add_argument('--no-clear', action='store_true',
                              help='Do not empty destination folders first')

    return parser


def _drop_unset(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Remove options the user did not pass, so YAML values and defaults survive."""
    return {
        key: _drop_unset(value) if isinstance(value, dict) else value
        for key, value in overrides.items()
        if value is not None
    }


def _build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        'command': args.command,
        'seed': args.seed,
        'dataset': {'root': args.dataset},
    }
    if args.verbose:
        overrides['verbose'] = True
    if args.no_progress:
        overrides['show_progress'] = False

    if args.command == 'split':
        overrides['split'] = {
            'train_root': args.train,
            'val_root': args.val,
            'test_root': args.test,
            'train_ratio': args.train_ratio,
            'val_ratio': args.val_ratio,
            'test_ratio': args.test_ratio,
            'seed': args.seed,
        }
        if args.no_clear:
            overrides['split']['clear_destinations'] = False
        return _drop_unset(overrides)

    classifier: Dict[str, Any] = {
        'predictions_path': args.predictions,
        'model_path': args.model,
        'labels_path': args.labels,
        'image_size': args.image_size,
        'device': args.device,
    }
    if args.predictions is not None:
        classifier['backend'] = 'predictions'
    elif args.model is not None:
        classifier['backend'] = 'torchscript'
    overrides['classifier'] = classifier

    overrides['evaluation'] = {
        'num_samples': args.samples,
        'num_workers': args.workers,
        'seed': args.seed,
    }
    if args.no_viz:
        overrides['evaluation']['visualizations'] = False
    if args.no_progress:
        overrides['evaluation']['show_progress'] = False

    overrides['output'] = {'output_dir': args.output_dir}
    return _drop_unset(overrides)


def parse_args_to_config(argv: Optional[List[str]] = None) -> PipelineConfig:
    """Parse command-line arguments and merge with YAML config.

    Priority: CLI args > YAML config > defaults
    """
    parser = create_arg_parser()
    args = parser.parse_args(argv)

    # Load YAML config
    if args.config is not None:
        yaml_config = load_yaml_config(args.config)
    elif DEFAULT_CONFIG_PATH.exists():
        yaml_config = load_yaml_config(str(DEFAULT_CONFIG_PATH))
    else:
        yaml_config = {}

    merged_config = merge_configs(yaml_config, _build_overrides(args))
    return dict_to_config(merged_config)
