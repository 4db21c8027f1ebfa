import sys

from vam_rpc.agent import PresenceAgent
from vam_rpc.discord_rpc import PresencePublisher, connect_to_discord
from vam_rpc.status import STARTING, StatusReporter


def main() -> int:
    reporter = StatusReporter()
    reporter.report(STARTING)
    print("[Agent] Starting service", flush=True)

    if sys.platform != "darwin":
        print("[Music] Apple Music bridge is only available on macOS; state will read as stopped.", flush=True)

    # No retry here: the launch agent restarts us on a non-zero exit.
    try:
        rpc = connect_to_discord()
    except Exception as e:
        print(f"[RPC] Discord connect failed: {e}", flush=True)
        reporter.report("Error: Discord RPC connect failed")
        return 1

    agent = PresenceAgent(PresencePublisher(rpc), reporter=reporter)
    print("[Music] Watching Apple Music… (Ctrl+C to stop)", flush=True)
    try:
        agent.run_forever()
    except KeyboardInterrupt:
        agent.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
