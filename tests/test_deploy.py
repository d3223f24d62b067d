from __future__ import annotations

from pathlib import Path

import pytest

from kiosk_installer.errors import DeploymentError
from kiosk_installer.steps.step_40_deploy_project import DeployProjectStep, unique_backup_path

from .conftest import make_dist


def _archive(cfg) -> None:
    Path(cfg.dist_archive).write_bytes(b"fake tar")


def _step() -> DeployProjectStep:
    return DeployProjectStep(clock=lambda: 1700000000.0)


class TestArchiveBranch:
    def test_extracts_validates_and_fixes_permissions(self, ctx, cfg, runner):
        _archive(cfg)
        runner.on("sudo", "tar", "-xf", cfg.dist_archive, effect=lambda argv: make_dist(cfg.project_dir))

        state = _step().run(ctx, {})

        assert runner.ran("sudo", "tar", "-xf", cfg.dist_archive, "-C", cfg.project_dir)
        assert runner.ran("sudo", "chown", "-R", "menudisplay:menudisplay", cfg.project_dir)
        assert runner.ran("sudo", "chmod", "-R", "755", cfg.dist_dir)
        assert state["execution"]["decisions"]["deploy_branch"] == "archive"

    def test_never_invokes_build_tooling(self, ctx, cfg, runner):
        _archive(cfg)
        runner.on("sudo", "tar", effect=lambda argv: make_dist(cfg.project_dir))

        _step().run(ctx, {})

        assert not any("npm" in argv for argv in runner.argvs)

    def test_syncs_config_files_from_temp_clone_then_discards_it(self, ctx, cfg, runner):
        _archive(cfg)
        runner.on("sudo", "tar", effect=lambda argv: make_dist(cfg.project_dir))

        def fake_clone(argv):
            temp = Path(argv[-1])
            temp.mkdir(parents=True)
            (temp / "package.json").write_text("{}", encoding="utf-8")
            (temp / "astro.config.mjs").write_text("export default {}", encoding="utf-8")

        runner.on("sudo", "git", "clone", cfg.repo_url, cfg.temp_repo_dir, effect=fake_clone)

        _step().run(ctx, {})

        copied = [c.argv[2] for c in runner.find("sudo", "cp")]
        assert copied == [
            str(Path(cfg.temp_repo_dir) / "package.json"),
            str(Path(cfg.temp_repo_dir) / "astro.config.mjs"),
        ]
        assert not Path(cfg.temp_repo_dir).exists()

    def test_extraction_failure_is_fatal(self, ctx, cfg, runner):
        _archive(cfg)
        runner.fail("sudo", "tar")

        with pytest.raises(DeploymentError, match="Failed to extract"):
            _step().run(ctx, {})

    def test_missing_marker_file_is_fatal(self, ctx, cfg, runner):
        _archive(cfg)
        # tar "succeeds" but produces no dist/index.html
        with pytest.raises(DeploymentError, match="no valid dist folder"):
            _step().run(ctx, {})
        assert not runner.ran("sudo", "git", "clone")

    def test_temp_clone_removed_even_when_clone_fails(self, ctx, cfg, runner):
        _archive(cfg)
        runner.on("sudo", "tar", effect=lambda argv: make_dist(cfg.project_dir))
        runner.fail("sudo", "git", "clone")

        with pytest.raises(DeploymentError, match="Failed to clone"):
            _step().run(ctx, {})

        rm_calls = runner.find("sudo", "rm", "-rf", cfg.temp_repo_dir)
        assert len(rm_calls) == 2


class TestSourceBranch:
    def test_clone_install_build_as_service_user(self, ctx, cfg, healthy_host):
        state = _step().run(ctx, {})

        runner = healthy_host
        assert runner.ran("sudo", "git", "clone", cfg.repo_url, cfg.project_dir)
        install = runner.find("sudo", "-u", "menudisplay", "-H", "npm", "install")
        build = runner.find("sudo", "-u", "menudisplay", "-H", "npm", "run", "build")
        assert len(install) == 1 and len(build) == 1
        assert install[0].cwd == cfg.project_dir
        # npm only ever runs under the service identity
        for argv in runner.argvs:
            if "npm" in argv and argv[:2] != ["npm", "--version"]:
                assert argv[:3] == ["sudo", "-u", "menudisplay"]
        assert state["execution"]["decisions"]["deploy_branch"] == "source"

    def test_tree_handed_to_service_user_before_build(self, ctx, cfg, healthy_host):
        _step().run(ctx, {})

        runner = healthy_host
        chown = runner.index("sudo", "chown", "-R", cfg.owner, cfg.project_dir)
        install = runner.index("sudo", "-u", "menudisplay", "-H", "npm", "install")
        assert chown is not None and chown < install

    def test_build_failure_suggests_prebuilt_archive(self, ctx, cfg, healthy_host):
        healthy_host.fail("sudo", "-u", "menudisplay", "-H", "npm", "run", "build")

        with pytest.raises(DeploymentError) as exc:
            _step().run(ctx, {})

        assert "dist.tar" in str(exc.value)
        assert cfg.dist_archive in str(exc.value)

    def test_missing_dist_after_build_is_fatal(self, ctx, cfg, healthy_host):
        healthy_host.on("sudo", "-u", "menudisplay", "-H", "npm", "run", "build")

        with pytest.raises(DeploymentError, match="No dist directory"):
            _step().run(ctx, {})


class TestBackups:
    def test_existing_deployment_is_renamed_not_deleted(self, ctx, cfg, healthy_host):
        old = Path(cfg.project_dir)
        old.mkdir(parents=True)
        (old / "keep.txt").write_text("previous", encoding="utf-8")

        state = _step().run(ctx, {})

        backup = Path(f"{cfg.project_dir}.backup.1700000000")
        assert (backup / "keep.txt").read_text(encoding="utf-8") == "previous"
        assert state["execution"]["decisions"]["backup_path"] == str(backup)
        assert not healthy_host.ran("sudo", "rm", "-rf", cfg.project_dir)

    def test_rerun_in_same_second_gets_distinct_backup(self, ctx, cfg, healthy_host):
        step = _step()
        step.run(ctx, {})
        step.run(ctx, {})
        step.run(ctx, {})

        base = f"{cfg.project_dir}.backup.1700000000"
        assert Path(base).is_dir()
        assert Path(base + ".1").is_dir()
        assert Path(cfg.marker_file).is_file()

    def test_no_backup_on_first_install(self, ctx, cfg, healthy_host):
        state = _step().run(ctx, {})
        assert state["execution"]["decisions"]["backup_path"] is None
        assert not healthy_host.ran("sudo", "mv")


def test_unique_backup_path_skips_taken_names():
    taken = {"/opt/app.backup.5", "/opt/app.backup.5.1"}
    assert unique_backup_path("/opt/app", 5, taken.__contains__) == "/opt/app.backup.5.2"
