"""Report generation for demo results."""
from __future__ import annotations

from permit_buffer.demo.harness import DemoResult


def format_report(result: DemoResult, label: str = "Bounded buffer demo") -> str:
    """Format a DemoResult as a readable report string."""
    s = result.stats
    lines = [
        f"=== {label} ===",
        f"Capacity:          {result.capacity}",
        f"Workers:           {result.producers} producer(s), {result.consumers} consumer(s)",
        f"Total time:        {result.elapsed_ms:.1f} ms",
        f"Throughput:        {result.items_per_sec:,.0f} items/sec",
        "",
        "Items:",
        f"  Produced:        {result.items_produced:,}",
        f"  Consumed:        {result.items_consumed:,}",
        f"  Drained:         {result.items_drained:,}",
        f"  Timeouts:        {result.timeouts:,}",
        f"  Conserved:       {'yes' if result.conserved else 'NO'}",
        "",
        "Final state:",
        f"  Size:            {s.size}",
        f"  Write permits:   {s.write_permits}",
        f"  Read permits:    {s.read_permits}",
        f"  Closed:          {s.closed}",
    ]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"  {e}" for e in result.errors)
    return "\n".join(lines)
