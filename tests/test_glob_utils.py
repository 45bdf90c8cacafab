from __future__ import annotations

import pytest

from utils import match_any, match_glob, to_posix


@pytest.mark.parametrize(
    ("path", "pattern"),
    [
        ("src/routes/users.ts", "src/routes/**/*.ts"),
        ("src/routes/v1/admin/users.ts", "src/routes/**/*.ts"),
        ("scripts/deploy.js", "scripts/**"),
        ("scripts/tools/deploy.js", "scripts/**"),
        ("src/utils/logger.ts", "src/utils/logger.ts"),
        (".env.example", ".env.example"),
        ("config/.env.example", ".env.example"),
        ("src/a.ts", "src/?.ts"),
    ],
)
def test_match_glob_matches(path: str, pattern: str) -> None:
    assert match_glob(path, pattern) is True


@pytest.mark.parametrize(
    ("path", "pattern"),
    [
        ("src/routes/users.tsx", "src/routes/**/*.ts"),
        ("src/controllers/users.ts", "src/routes/**/*.ts"),
        ("src/nested/a.ts", "src/*.ts"),
        ("scripts", "scripts/**"),
        ("src/ab.ts", "src/?.ts"),
    ],
)
def test_match_glob_rejects(path: str, pattern: str) -> None:
    assert match_glob(path, pattern) is False


def test_single_star_does_not_cross_directories() -> None:
    assert match_glob("src/a.ts", "src/*.ts") is True
    assert match_glob("src/x/a.ts", "src/*.ts") is False


def test_match_any_requires_one_match() -> None:
    patterns = ("src/legacy/**", "vite.config.ts")

    assert match_any("src/legacy/old.ts", patterns) is True
    assert match_any("vite.config.ts", patterns) is True
    assert match_any("src/app.ts", patterns) is False
    assert match_any("src/app.ts", ()) is False


def test_to_posix_normalizes_separators_and_dot_prefix() -> None:
    assert to_posix("./README.md") == "README.md"
    assert to_posix("src\\routes\\users.ts") == "src/routes/users.ts"
    assert to_posix("src//routes/") == "src/routes"
