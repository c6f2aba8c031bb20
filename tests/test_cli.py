"""Tests for the nutriflow command-line interface."""

import json
import signal

import pytest

from conftest import make_food, write_dataset
from nutriflow.cli import build_parser, main
from nutriflow.data_layer.ingredient_store import IngredientStore


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    """Config pointing at an on-disk SQLite database under tmp_path."""
    monkeypatch.delenv("NUTRIFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("NUTRIFLOW_LOG_LEVEL", raising=False)
    path = tmp_path / "pipeline.yaml"
    path.write_text(
        f"database_url: sqlite:///{tmp_path / 'cli.db'}\n"
        "batch_size: 10\n"
        "max_workers: 2\n"
    )
    return str(path)


@pytest.fixture
def foundation_file(tmp_path):
    return write_dataset(tmp_path / "foundation.json", "FoundationFoods", [
        make_food("Chicken breast", calories=165, protein=31, fat=3.6),
        make_food("Rice, white, cooked", calories=130, carbs=28),
        make_food("Oats", calories=1628, protein=13),
    ])


@pytest.fixture
def seeded(config_path, foundation_file):
    assert main(["seed", "--config", config_path, "--foundation", foundation_file]) == 0
    return config_path


def open_db(tmp_path):
    return IngredientStore.from_url(f"sqlite:///{tmp_path / 'cli.db'}")


def write_recipe(tmp_path, **overrides):
    request = {
        "title": "Chicken and Rice",
        "servings": 2,
        "ingredients": [
            {"name": "Chicken Breast", "amount": 200},
            {"name": "rice, white, cooked", "amount": 300},
            {"name": "saffron", "amount": 1, "is_optional": True},
        ],
    }
    request.update(overrides)
    path = tmp_path / "recipe.json"
    path.write_text(json.dumps(request))
    return str(path)


class TestParser:
    """Tests for argument parsing."""

    def test_config_accepted_after_subcommand(self):
        args = build_parser().parse_args(["reconcile", "--config", "x.yaml", "--dry-run"])
        assert args.config == "x.yaml"
        assert args.dry_run is True

    def test_target_and_factor_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["scale", "r.json", "--target", "300", "--factor", "2"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestSeed:
    """Tests for the seed command."""

    def test_seed_populates_store(self, capsys, seeded, tmp_path):
        store = open_db(tmp_path)
        assert store.count() == 3
        assert store.get_by_name("chicken breast").calories == 165.0
        store.engine.dispose()

        assert "Total: 3 processed, 3 added" in capsys.readouterr().err

    def test_sigint_handler_restored(self, config_path, foundation_file):
        before = signal.getsignal(signal.SIGINT)
        main(["seed", "--config", config_path, "--foundation", foundation_file])
        assert signal.getsignal(signal.SIGINT) is before

    def test_datasets_from_config(self, tmp_path, config_path, foundation_file):
        with open(config_path, "a") as f:
            f.write(f"datasets:\n  foundation: {foundation_file}\n")

        assert main(["seed", "--config", config_path]) == 0

    def test_no_datasets(self, config_path, capsys):
        assert main(["seed", "--config", config_path]) == 2
        assert "no dataset files" in capsys.readouterr().err

    def test_missing_dataset_file(self, config_path, tmp_path):
        assert main(["seed", "--config", config_path, "--branded", str(tmp_path / "nope.json")]) == 1

    def test_reseed(self, capsys, seeded, foundation_file):
        capsys.readouterr()
        assert main(["seed", "--config", seeded, "--foundation", foundation_file, "--reseed"]) == 0
        err = capsys.readouterr().err
        assert "Cleared 3 previously ingested ingredients" in err
        assert "3 added" in err


class TestMaintenanceCommands:
    """Tests for reconcile and clear."""

    def test_reconcile(self, seeded, tmp_path):
        assert main(["reconcile", "--config", seeded]) == 0

        store = open_db(tmp_path)
        assert store.get_by_name("oats").calories == 389.0
        store.engine.dispose()

    def test_reconcile_dry_run(self, seeded, tmp_path, capsys):
        assert main(["reconcile", "--config", seeded, "--dry-run"]) == 0

        assert "Would correct 1" in capsys.readouterr().err
        store = open_db(tmp_path)
        assert store.get_by_name("oats").calories == 1628.0
        store.engine.dispose()

    @pytest.mark.parametrize("threshold", ["0", "-5"])
    def test_reconcile_rejects_non_positive_threshold(self, capsys, seeded, tmp_path, threshold):
        assert main(["reconcile", "--config", seeded, f"--threshold={threshold}"]) == 1

        assert "Error: Invalid threshold" in capsys.readouterr().err
        store = open_db(tmp_path)
        assert store.get_by_name("oats").calories == 1628.0
        store.engine.dispose()

    def test_clear(self, seeded, tmp_path):
        assert main(["clear", "--config", seeded]) == 0

        store = open_db(tmp_path)
        assert store.count() == 0
        store.engine.dispose()


class TestScale:
    """Tests for the scale command."""

    def test_markdown_display_mode(self, seeded, tmp_path, capsys):
        assert main(["scale", "--config", seeded, write_recipe(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert out.startswith("# Chicken and Rice")
        assert "- 200g Chicken Breast" in out
        assert "- 1g saffron (optional) [no nutrition data]" in out
        assert "**Calories:** 720 kcal" in out
        assert "**Calories:** 360 kcal" in out

    def test_json_target_mode(self, seeded, tmp_path, capsys):
        recipe = write_recipe(tmp_path)
        assert main(["scale", "--config", seeded, recipe, "--target", "540", "--output", "json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["scaling_factor"] == 1.5
        assert payload["totals"]["per_serving"]["calories"] == 540
        assert payload["totals"]["unavailable"] == ["saffron"]

    def test_target_from_request_file(self, seeded, tmp_path, capsys):
        recipe = write_recipe(tmp_path, target_calories_per_serving=180)
        assert main(["scale", "--config", seeded, recipe, "--output", "json"]) == 0
        assert json.loads(capsys.readouterr().out)["scaling_factor"] == 0.5

    def test_manual_factor(self, seeded, tmp_path, capsys):
        assert main(["scale", "--config", seeded, write_recipe(tmp_path), "--factor", "2"]) == 0
        assert "- 400g Chicken Breast" in capsys.readouterr().out

    def test_invalid_request(self, seeded, tmp_path, capsys):
        assert main(["scale", "--config", seeded, write_recipe(tmp_path, servings=0)]) == 1
        assert "Invalid recipe file" in capsys.readouterr().err

    def test_missing_recipe_file(self, seeded, tmp_path, capsys):
        assert main(["scale", "--config", seeded, str(tmp_path / "none.json")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_scaling_failure_reported(self, seeded, tmp_path, capsys):
        recipe = write_recipe(tmp_path, ingredients=[{"name": "chicken breast", "amount": 1, "unit": "cup"}])

        assert main(["scale", "--config", seeded, recipe, "--output", "json"]) == 1

        captured = capsys.readouterr()
        assert json.loads(captured.out)["error"]["error_code"] == "UNIT_NOT_SUPPORTED"
        assert "UNIT_NOT_SUPPORTED" in captured.err


class TestConfigErrors:
    """Tests for config loading failures."""

    def test_missing_explicit_config(self, tmp_path, capsys):
        assert main(["clear", "--config", str(tmp_path / "missing.yaml")]) == 1
        assert "Cannot load config" in capsys.readouterr().err
