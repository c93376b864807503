"""
Tests for the prediction-file classifier.
"""

import json
from pathlib import Path

import pytest

from src.core.errors import InferenceError
from src.classifier.prediction_file import PredictionFileClassifier, load_predictions


class TestLoadPredictions:
    """Test prediction file parsing."""

    def test_json_with_predictions_key(self, tmp_path):
        """Test the wrapped JSON format."""
        path = tmp_path / "preds.json"
        path.write_text(json.dumps({'predictions': {'A/a1.jpg': 'A'}}))
        assert load_predictions(path) == {'A/a1.jpg': 'A'}

    def test_flat_json(self, tmp_path):
        """Test a flat path -> label object."""
        path = tmp_path / "preds.json"
        path.write_text(json.dumps({'A/a1.jpg': 'A', 'B/b1.jpg': 'A'}))
        assert load_predictions(path) == {'A/a1.jpg': 'A', 'B/b1.jpg': 'A'}

    def test_csv(self, tmp_path):
        """Test the CSV format."""
        path = tmp_path / "preds.csv"
        path.write_text("image_path,label\nA/a1.jpg,A\nB/b1.jpg,B\n")
        assert load_predictions(path) == {'A/a1.jpg': 'A', 'B/b1.jpg': 'B'}

    def test_csv_missing_columns(self, tmp_path):
        """Test CSV without the expected header."""
        path = tmp_path / "preds.csv"
        path.write_text("file,prediction\nA/a1.jpg,A\n")
        with pytest.raises(ValueError, match="Missing columns"):
            load_predictions(path)

    def test_unsupported_format(self, tmp_path):
        """Test unknown suffix is rejected."""
        path = tmp_path / "preds.txt"
        path.write_text("A/a1.jpg A\n")
        with pytest.raises(ValueError, match="Unsupported"):
            load_predictions(path)

    def test_missing_file(self, tmp_path):
        """Test missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_predictions(tmp_path / "missing.json")

    def test_json_top_level_list(self, tmp_path):
        """Test a JSON list instead of an object is rejected with ValueError."""
        path = tmp_path / "preds.json"
        path.write_text('[["A/a1.jpg", "A"]]')
        with pytest.raises(ValueError, match="JSON object"):
            load_predictions(path)


class TestPredictionFileClassifier:
    """Test PredictionFileClassifier lookups."""

    def test_class_relative_key(self, two_class_dataset):
        """Test keys of the form class/file."""
        classifier = PredictionFileClassifier({'A/a1.jpg': 'B'})
        assert classifier.predict(two_class_dataset / 'A' / 'a1.jpg') == 'B'

    def test_relative_to_base_dir(self, two_class_dataset):
        """Test keys relative to the predictions file directory."""
        classifier = PredictionFileClassifier(
            {'dataset/B/b2.jpg': 'A'},
            base_dir=two_class_dataset.parent
        )
        assert classifier.predict(two_class_dataset / 'B' / 'b2.jpg') == 'A'

    def test_absolute_key(self, two_class_dataset):
        """Test absolute path keys."""
        image = two_class_dataset / 'A' / 'a2.jpg'
        classifier = PredictionFileClassifier({str(image.resolve()): 'A'})
        assert classifier.predict(image) == 'A'

    def test_bare_file_name(self, two_class_dataset):
        """Test keys that are only the file name."""
        classifier = PredictionFileClassifier({'b1.jpg': 'B'})
        assert classifier.predict(two_class_dataset / 'B' / 'b1.jpg') == 'B'

    def test_missing_prediction_raises(self, two_class_dataset):
        """Test an image without a recorded prediction."""
        classifier = PredictionFileClassifier({'A/a1.jpg': 'A'})
        with pytest.raises(InferenceError) as exc_info:
            classifier.predict(two_class_dataset / 'B' / 'b1.jpg')
        assert exc_info.value.image_path.name == 'b1.jpg'

    def test_from_file(self, tmp_path, two_class_dataset):
        """Test loading from disk."""
        path = tmp_path / "preds.json"
        path.write_text(json.dumps({'predictions': {'dataset/A/a1.jpg': 'A'}}))
        classifier = PredictionFileClassifier.from_file(path, base_dir=tmp_path)

        assert len(classifier) == 1
        assert classifier.predict(two_class_dataset / 'A' / 'a1.jpg') == 'A'
        assert classifier.get_name() == 'PredictionFileClassifier'
