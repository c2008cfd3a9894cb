"""Tests for the build manifest."""

from libs.manifest import Manifest


class TestManifest:
    def test_load_without_installed_distribution(self):
        manifest = Manifest.load(distribution="not-an-installed-distribution", env={})

        assert manifest.version is None
        assert manifest.python_version
        assert manifest.git_commit is None

    def test_load_reads_git_details_from_env(self):
        env = {"GIT_REPO": "git@example.com:data/avro-converter.git", "GIT_COMMIT": "abc123", "GIT_TAG": "v0.1.0"}

        manifest = Manifest.load(distribution="not-an-installed-distribution", env=env)

        assert manifest.git_repo == env["GIT_REPO"]
        assert manifest.git_commit == "abc123"
        assert manifest.git_tag == "v0.1.0"

    def test_render_marks_missing_values_unknown(self):
        rendered = Manifest(version="1.0.0", git_commit="abc123").render()
        lines = dict(line.split(":", 1) for line in rendered.splitlines())

        assert lines["Version"].strip() == "1.0.0"
        assert lines["Git-Commit-Hash"].strip() == "abc123"
        assert lines["Git-Tag"].strip() == "unknown"
