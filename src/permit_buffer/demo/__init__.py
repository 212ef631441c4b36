"""Producer/consumer demo harness and text report."""
from permit_buffer.demo.harness import DemoResult, run_demo
from permit_buffer.demo.report import format_report

__all__ = ["DemoResult", "format_report", "run_demo"]
