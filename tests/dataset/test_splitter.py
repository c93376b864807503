"""
Tests for the class-stratified dataset splitter.
"""

from pathlib import Path

import pytest

from src.dataset.indexer import DatasetIndexer
from src.dataset.splitter import (
    DatasetSplitter,
    SplitConfig,
    SPLIT_NAMES,
    clear_destinations,
)


def _files(root: Path):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob('*') if p.is_file())


@pytest.fixture
def split_roots(tmp_path):
    roots = [tmp_path / 'train', tmp_path / 'val', tmp_path / 'test']
    clear_destinations(*roots)
    return roots


class TestSplitConfig:
    """Test SplitConfig validation."""

    def test_default_ratios(self):
        """Test default 60/20/20 split."""
        config = SplitConfig()
        assert (config.train_ratio, config.val_ratio, config.test_ratio) == (0.6, 0.2, 0.2)

    def test_ratios_must_sum_to_one(self):
        """Test invalid ratio sums are rejected."""
        with pytest.raises(ValueError, match="sum to 1.0"):
            SplitConfig(train_ratio=0.5, val_ratio=0.2, test_ratio=0.2)

    def test_ratio_range(self):
        """Test negative ratios are rejected."""
        with pytest.raises(ValueError):
            SplitConfig(train_ratio=1.2, val_ratio=-0.1, test_ratio=-0.1)


class TestCalculateCounts:
    """Test per-class count arithmetic."""

    @pytest.mark.parametrize("total,expected", [
        (5, (3, 1, 1)),
        (10, (6, 2, 2)),
        (7, (4, 1, 2)),
        (2, (1, 0, 1)),
        (1, (0, 0, 1)),
        (0, (0, 0, 0)),
    ])
    def test_floor_with_remainder_to_test(self, total, expected):
        """Test train and val are floored and test takes the remainder."""
        assert DatasetSplitter().calculate_counts(total) == expected


class TestAssign:
    """Test in-memory partitioning."""

    @pytest.mark.parametrize("seed", [0, 1, 42, 1234])
    def test_partition_is_disjoint_and_complete(self, image_tree, seed):
        """Test every image lands in exactly one subset."""
        root = image_tree({
            'cat': [f'c{i}.jpg' for i in range(7)],
            'dog': [f'd{i}.jpg' for i in range(12)],
        })
        grouped = DatasetIndexer().index_by_class(root)
        assignments = DatasetSplitter().assign(grouped, seed=seed)

        for class_name, samples in grouped.items():
            assignment = assignments[class_name]
            subsets = [set(s.image_path for s in assignment.subset(name)) for name in SPLIT_NAMES]
            assert sum(len(s) for s in subsets) == len(samples)
            assert set.union(*subsets) == {s.image_path for s in samples}
            assert not (subsets[0] & subsets[1])
            assert not (subsets[0] & subsets[2])
            assert not (subsets[1] & subsets[2])

    def test_same_seed_same_split(self, image_tree):
        """Test a seeded split is reproducible."""
        root = image_tree({'cat': [f'c{i}.jpg' for i in range(10)]})
        grouped = DatasetIndexer().index_by_class(root)
        splitter = DatasetSplitter()

        first = splitter.assign(grouped, seed=7)['cat']
        second = splitter.assign(grouped, seed=7)['cat']
        assert first.train == second.train
        assert first.val == second.val
        assert first.test == second.test

    def test_small_classes(self, image_tree):
        """Test classes with fewer than three images."""
        root = image_tree({'one': ['o.jpg'], 'two': ['t1.jpg', 't2.jpg']})
        grouped = DatasetIndexer().index_by_class(root)
        assignments = DatasetSplitter().assign(grouped, seed=0)

        assert assignments['one'].counts() == {'train': 0, 'val': 0, 'test': 1}
        assert assignments['two'].counts() == {'train': 1, 'val': 0, 'test': 1}


class TestSplit:
    """Test materialized splits."""

    def test_five_images_split_3_1_1(self, image_tree, split_roots):
        """Test one class of five images copies 3/1/1 files."""
        root = image_tree({'X': [f'x{i}.jpg' for i in range(1, 6)]})
        result = DatasetSplitter().split_directory(root, *split_roots, seed=42)

        train, val, test = split_roots
        assert len(list((train / 'X').iterdir())) == 3
        assert len(list((val / 'X').iterdir())) == 1
        assert len(list((test / 'X').iterdir())) == 1
        assert result.copied == 5
        assert result.counts() == {'train': 3, 'val': 1, 'test': 1}
        assert not result.failures

        names = _files(train) + _files(val) + _files(test)
        assert sorted(names) == [f'X/x{i}.jpg' for i in range(1, 6)]

    def test_source_untouched(self, image_tree, split_roots):
        """Test the dataset is copied, not moved."""
        root = image_tree({'X': ['x1.jpg', 'x2.jpg', 'x3.jpg']})
        before = _files(root)
        DatasetSplitter().split_directory(root, *split_roots, seed=1)
        assert _files(root) == before

    def test_different_seeds_keep_counts(self, image_tree, tmp_path):
        """Test counts do not depend on the seed."""
        root = image_tree({'X': [f'x{i}.jpg' for i in range(10)]})
        for seed in (1, 2, 3):
            roots = [tmp_path / f'{name}_{seed}' for name in SPLIT_NAMES]
            clear_destinations(*roots)
            result = DatasetSplitter().split_directory(root, *roots, seed=seed)
            assert result.counts() == {'train': 6, 'val': 2, 'test': 2}

    def test_copy_failure_is_recorded(self, image_tree, split_roots):
        """Test a vanished source file is recorded and the rest are copied."""
        root = image_tree({'X': [f'x{i}.jpg' for i in range(5)]})
        grouped = DatasetIndexer().index_by_class(root)
        (root / 'X' / 'x0.jpg').unlink()

        result = DatasetSplitter().split(grouped, *split_roots, seed=3)

        assert result.copied == 4
        assert len(result.failures) == 1
        assert result.failures[0].path.name == 'x0.jpg'
        assert any(e.level.value == 'error' for e in result.events)

    def test_to_dict(self, image_tree, split_roots):
        """Test result serialization."""
        root = image_tree({'X': [f'x{i}.jpg' for i in range(5)]})
        result = DatasetSplitter().split_directory(root, *split_roots, seed=0)
        data = result.to_dict()
        assert data['splits'] == {'train': 3, 'val': 1, 'test': 1}
        assert data['classes'] == {'X': {'train': 3, 'val': 1, 'test': 1}}
        assert data['copied'] == 5


class TestClearDestinations:
    """Test destination preparation."""

    def test_clears_existing_content(self, tmp_path):
        """Test stale files are removed and folders recreated."""
        root = tmp_path / 'train'
        (root / 'old').mkdir(parents=True)
        (root / 'old' / 'stale.jpg').write_bytes(b"x")

        clear_destinations(root)

        assert root.is_dir()
        assert list(root.iterdir()) == []
