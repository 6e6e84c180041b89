"""Rich text rendering of snapshot entities for the TUI."""

from rich.text import Text

from cluster_monitor.models.api import StateVariant
from cluster_monitor.models.cluster import Cluster, Instance, Replicaset, Tier
from cluster_monitor.view import Row, RowKind, ViewMode

STATE_STYLES = {
    StateVariant.ONLINE: "green",
    StateVariant.OFFLINE: "red",
    StateVariant.EXPELLED: "bright_black",
    StateVariant.UNKNOWN: "yellow",
}

HIGHLIGHT_STYLE = "black on yellow"

COLUMNS = {
    ViewMode.TIERS: ("Name", "State", "RS", "Inst", "RF", "Buckets", "Vote", "Memory"),
    ViewMode.REPLICASETS: ("Replicaset", "State", "Tier", "Inst", "Memory"),
    ViewMode.INSTANCES: (
        "",
        "Instance",
        "State",
        "Replicaset",
        "Tier",
        "Address",
        "Failure Domain",
    ),
}


def format_bytes(value: int) -> str:
    """Human readable size using binary units."""
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{value} B"


def format_memory(used: int, total: int, percent: float) -> str:
    return f"{format_bytes(used)}/{format_bytes(total)} ({percent:.1f}%)"


def state_text(state: StateVariant) -> Text:
    return Text(state.value, style=STATE_STYLES[state])


def highlight_match(text: str, needle: str, style: str = "") -> Text:
    """Return text with every case-insensitive occurrence of needle highlighted."""
    result = Text(text, style=style)
    if not needle:
        return result
    lowered = text.lower()
    target = needle.lower()
    start = lowered.find(target)
    while start != -1:
        result.stylize(HIGHLIGHT_STYLE, start, start + len(target))
        start = lowered.find(target, start + len(target))
    return result


def row_cells(row: Row, mode: ViewMode, filter_text: str = "") -> list[Text | str]:
    """Cells for one table row in the given mode."""
    match mode:
        case ViewMode.TIERS:
            return _tree_cells(row)
        case ViewMode.REPLICASETS:
            rs: Replicaset = row.node
            return [
                Text(rs.name, style="bold"),
                state_text(rs.state),
                Text(rs.tier, style="cyan"),
                f"{rs.online_count}/{rs.instance_count}",
                format_memory(rs.memory_used, rs.memory_total, rs.memory_percent),
            ]
        case ViewMode.INSTANCES:
            inst: Instance = row.node
            return [
                Text("★" if inst.is_leader else "", style="yellow"),
                highlight_match(inst.name, filter_text, "bold"),
                state_text(inst.state),
                highlight_match(inst.replicaset, filter_text),
                highlight_match(inst.tier, filter_text, "cyan"),
                highlight_match(inst.binary_address, filter_text, "bright_black"),
                highlight_match(inst.failure_domain_text, filter_text, "bright_black"),
            ]
    return []


def _tree_cells(row: Row) -> list[Text | str]:
    arrow = "▼" if row.expanded else "▶"
    match row.kind:
        case RowKind.TIER:
            tier: Tier = row.node
            name = Text.assemble((arrow, "yellow"), " ", (tier.name, "bold cyan"))
            return [
                name,
                Text(f"{tier.online_count}/{tier.instance_count} online"),
                str(tier.replicaset_count),
                str(tier.instance_count),
                str(tier.replication_factor),
                str(tier.bucket_count),
                Text("✓", style="green") if tier.can_vote else Text("✗", style="red"),
                format_memory(tier.memory_used, tier.memory_total, tier.memory_percent),
            ]
        case RowKind.REPLICASET:
            rs: Replicaset = row.node
            branch = "└─" if row.is_last else "├─"
            name = Text.assemble(f"  {branch}", (arrow, "yellow"), " ", (rs.name, "bold"))
            return [
                name,
                state_text(rs.state),
                "",
                str(rs.instance_count),
                "",
                "",
                "",
                format_memory(rs.memory_used, rs.memory_total, rs.memory_percent),
            ]
        case RowKind.INSTANCE:
            inst: Instance = row.node
            branch = "└─" if row.is_last else "├─"
            name = Text.assemble(
                f"  │  {branch} ", inst.name, (" ★" if inst.is_leader else "", "yellow")
            )
            address = inst.binary_address
            if inst.pg_address:
                address += f"  pg:{inst.pg_address}"
            return [name, state_text(inst.state), "", "", "", "", "", Text(address, "bright_black")]
    return []


def cluster_header_text(cluster: Cluster | None, banner: str | None = None) -> Text:
    """Cluster summary shown above the main list."""
    if cluster is None:
        text = Text("Loading...", style="bright_black")
    else:
        online = cluster.online_count
        offline = cluster.offline_count
        if offline == 0:
            status_style = "green"
        elif online == 0:
            status_style = "red"
        else:
            status_style = "yellow"
        text = Text.assemble(
            ("Cluster: ", "bright_black"),
            (cluster.name, "bold"),
            "  │  ",
            ("Version: ", "bright_black"),
            (cluster.cluster_version, "cyan"),
            "  │  ",
            ("Picodata: ", "bright_black"),
            (cluster.engine_version, "cyan"),
            "  │  ",
            ("Replicasets: ", "bright_black"),
            str(cluster.replicaset_count),
            "\n",
            ("Instances: ", "bright_black"),
            (str(online), "green"),
            "/",
            (str(cluster.instance_count), status_style),
            (" online", "bright_black"),
            (f" ({offline} offline)" if offline else "", "red"),
            "  │  ",
            ("Plugins: ", "bright_black"),
            ", ".join(cluster.plugins) if cluster.plugins else "none",
            "\n",
            ("Memory: ", "bright_black"),
            format_memory(cluster.memory_used, cluster.memory_total, cluster.memory_percent),
        )
    if banner:
        text.append("\n")
        text.append(f"⚠ {banner}", style="bold yellow")
    return text


def instance_detail_text(inst: Instance) -> Text:
    """Full description of one instance for the detail popup."""
    rows = [
        ("Name", Text(inst.name, style="bold")),
        ("State", state_text(inst.state)),
        ("Target state", state_text(inst.target_state)),
        ("Leader", Text("yes", style="yellow") if inst.is_leader else Text("no")),
        ("Tier", Text(inst.tier, style="cyan")),
        ("Replicaset", Text(inst.replicaset)),
        ("Binary address", Text(inst.binary_address)),
        ("PG address", Text(inst.pg_address or "-")),
        ("HTTP address", Text(inst.http_address or "-")),
        ("Version", Text(inst.version or "-")),
    ]
    text = Text()
    for label, value in rows:
        text.append(f"{label + ':':<16}", style="bright_black")
        text.append_text(value)
        text.append("\n")
    text.append("Failure domain:\n", style="bright_black")
    if inst.failure_domain:
        for key, value in sorted(inst.failure_domain.items()):
            text.append(f"  {key}: ", style="bright_black")
            text.append(f"{value}\n")
    else:
        text.append("  none\n")
    return text
