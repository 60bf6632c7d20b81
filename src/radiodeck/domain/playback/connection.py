"""Translate the connection policy and session settings into mpv arguments."""

from radiodeck.core.config import ConnectionConfig


def connection_flags(policy: ConnectionConfig) -> list[str]:
    """mpv flags for stream reconnection and demuxer caching."""
    policy = policy.normalized()
    flags = []

    if policy.auto_reconnect:
        flags.append("--loop-playlist=force")
        flags.append(
            "--stream-lavf-o=reconnect_streamed=1,"
            f"reconnect_delay_max={policy.reconnect_delay}"
        )

    if policy.stream_buffer_mb > 0:
        flags.append("--cache=yes")
        flags.append(f"--demuxer-max-bytes={policy.stream_buffer_mb}M")
    else:
        flags.append("--no-cache")

    return flags


def build_mpv_command(
    mpv_path: str,
    url: str,
    volume: int,
    ipc_address: str,
    policy: ConnectionConfig,
) -> list[str]:
    """Full argv for one playback session. The URL is always last."""
    return [
        mpv_path,
        "--no-video",
        "--no-terminal",
        "--really-quiet",
        f"--volume={volume}",
        f"--input-ipc-server={ipc_address}",
        *connection_flags(policy),
        url,
    ]
