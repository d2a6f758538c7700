"""Unit tests for deployment summary rendering."""

from __future__ import annotations

from airgap_deploy.report import print_summary, render_summary, write_summary
from airgap_deploy.state import DeploymentRun, StageRecord


def _run() -> DeploymentRun:
    return DeploymentRun(
        deployment_id="0b5c6a1e",
        start_time="2026-01-01T00:00:00Z",
        end_time="2026-01-01T00:10:00Z",
        exit_code=1,
        status="failed",
        config={"rke2_version": "v1.30.1+rke2r1", "rancher_version": "not_set"},
        stages={
            "ssh-setup": StageRecord(
                status="success", start_time="2026-01-01T00:00:01Z",
                end_time="2026-01-01T00:01:00Z", exit_code=0,
            ),
            "rke2-deploy": StageRecord(
                status="failure", start_time="2026-01-01T00:01:01Z",
                end_time="2026-01-01T00:10:00Z", exit_code=2,
            ),
            "kubectl-setup": StageRecord(),
        },
    )


def test_render_summary_format():
    text = render_summary(_run())
    rule = "=" * 36

    assert text == "\n".join([
        rule,
        "DEPLOYMENT SUMMARY",
        rule,
        "Deployment ID: 0b5c6a1e",
        "Start Time: 2026-01-01T00:00:00Z",
        "End Time: 2026-01-01T00:10:00Z",
        "Exit Code: 1",
        "Status: failed",
        "",
        "Configuration:",
        "- rke2_version: v1.30.1+rke2r1",
        "- rancher_version: not_set",
        "",
        "Stages:",
        "- ssh-setup: success (start: 2026-01-01T00:00:01Z, end: 2026-01-01T00:01:00Z, exit_code: 0)",
        "- rke2-deploy: failure (start: 2026-01-01T00:01:01Z, end: 2026-01-01T00:10:00Z, exit_code: 2)",
        "- kubectl-setup: pending (start: N/A, end: N/A, exit_code: N/A)",
        "",
        rule,
        "END DEPLOYMENT SUMMARY",
        rule,
    ]) + "\n"


def test_render_summary_for_running_deployment():
    run = DeploymentRun(deployment_id="x", start_time="2026-01-01T00:00:00Z", stages={"a": StageRecord()})
    text = render_summary(run)

    assert "End Time: N/A" in text
    assert "Exit Code: N/A" in text
    assert "Status: running" in text


def test_render_summary_does_not_mutate_run():
    run = _run()
    before = run.model_copy(deep=True)
    render_summary(run)
    assert run == before


def test_write_summary(tmp_path):
    path = tmp_path / "logs" / "deployment_summary.txt"
    assert write_summary(_run(), path) == path
    assert path.read_text() == render_summary(_run())


def test_print_summary_lists_every_stage(capsys):
    print_summary(_run())
    err = capsys.readouterr().err
    for name in ("ssh-setup", "rke2-deploy", "kubectl-setup"):
        assert name in err
