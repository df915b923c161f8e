# tests/test_package.py
"""Tests for top-level package API."""


class TestPackageImports:
    """Verify the public API surface."""

    def test_version(self):
        import mcqexplain

        assert hasattr(mcqexplain, "__version__")
        assert mcqexplain.__version__.count(".") == 2

    def test_public_names(self):
        import mcqexplain

        for name in mcqexplain.__all__:
            assert hasattr(mcqexplain, name), name

    def test_config_importable(self):
        from mcqexplain.config import ExplainConfig, get_config

        assert ExplainConfig is not None
        assert callable(get_config)

    def test_cli_importable(self):
        from mcqexplain.cli import cli

        assert callable(cli)

    def test_parsing_reexports(self):
        from mcqexplain import parsing

        for name in parsing.__all__:
            assert hasattr(parsing, name), name
