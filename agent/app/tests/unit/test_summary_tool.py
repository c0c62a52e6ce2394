"""Unit tests for the template summary used by rule-based analysis."""

from __future__ import annotations

from app.agent.tools.builtin.summary_tool import SummaryTool
from app.protocol.gong import GongWebhook


def test_summary_cleans_grep_hits_and_dedupes(demo_webhook: GongWebhook) -> None:
    output = SummaryTool().summarize(
        webhook=demo_webhook,
        concerns=[
            "gong-calls/call.md:12:> [05:00] Honestly the pricing is higher than the competitor quote we received.",
            "> [05:00] Honestly the pricing is higher than the competitor quote we received.",
        ],
        commitments=["> [01:30] I will send the SOC 2 report and the data processing agreement after this call."],
        company_name="Initech",
    )

    assert output.summary.startswith("Initech met with 2 external participant(s) on *Acme Corp - Technical Evaluation*.")
    assert [item.description for item in output.objections] == [
        "Honestly the pricing is higher than the competitor quote we received."
    ]
    assert output.objections[0].handled_score == 50
    assert output.tasks[0].owner == "Jordan Lee"
    assert "*Next Steps*\n- I will send the SOC 2 report" in output.summary


def test_summary_without_findings(demo_webhook: GongWebhook) -> None:
    output = SummaryTool().summarize(webhook=demo_webhook, concerns=[], commitments=[], company_name="Initech")

    assert output.tasks == []
    assert output.objections == []
    assert "No explicit next steps found" in output.summary
