"""
Pipeline package for classifier evaluation.

Provides the end-to-end workflows:
- Evaluation (index, infer, aggregate, report)
- Dataset splitting
- Split -> train -> test-set evaluation, optionally after a zero-shot run
"""

from .run_pipeline import (
    main,
    EvaluationPipeline,
    PipelineStage,
    PipelineResult,
    TrainingResult,
    ZeroShotTrainResult,
    build_classifier,
    run_evaluation,
    run_split,
    run_training_pipeline,
    run_zero_shot_and_train,
)
from .config_parser import (
    PipelineConfig,
    DatasetConfig,
    ClassifierConfig,
    EvaluationConfig,
    SplitConfig,
    OutputConfig,
    all_inputs_selected,
    missing_inputs,
    parse_args_to_config,
    load_yaml_config
)

__all__ = [
    'main',
    'EvaluationPipeline',
    'PipelineStage',
    'PipelineResult',
    'TrainingResult',
    'ZeroShotTrainResult',
    'build_classifier',
    'run_evaluation',
    'run_split',
    'run_training_pipeline',
    'run_zero_shot_and_train',
    'PipelineConfig',
    'DatasetConfig',
    'ClassifierConfig',
    'EvaluationConfig',
    'SplitConfig',
    'OutputConfig',
    'all_inputs_selected',
    'missing_inputs',
    'parse_args_to_config',
    'load_yaml_config'
]
