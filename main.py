import logging
import os
import sys
import webbrowser
from dataclasses import replace

from crane_signals.cam_test import run_test_cam
from crane_signals.config import load_config

USAGE = (
    "Usage: python main.py <command>\n"
    "Commands:\n"
    "  test_cam [camera_index]\n"
    "  run_live [camera_index] [-server] [-config <file.json>] [-user <id>]\n"
    "  serve\n"
)


def _setup_logging() -> None:
    level = os.environ.get("CRANE_SIGNALS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _pop_option(args, flag):
    """Remove '<flag> <value>' from args, return value or None."""
    if flag not in args:
        return None
    i = args.index(flag)
    if i + 1 >= len(args):
        print(f"Missing value for {flag}")
        sys.exit(2)
    value = args[i + 1]
    del args[i : i + 2]
    return value


def main():
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    _setup_logging()
    cmd = sys.argv[1].lower()

    # -------------------------------------------------------------------------
    # 1) Kamera testen (Tracking + Rohwerte, keine Klassifikation)
    # -------------------------------------------------------------------------
    if cmd == "test_cam":
        cam_idx = int(sys.argv[2]) if len(sys.argv) >= 3 and sys.argv[2].isdigit() else 0
        run_test_cam(camera_index=cam_idx)
        return

    # -------------------------------------------------------------------------
    # 2) LIVE-Assessment (mit/ohne Web-Server)
    # -------------------------------------------------------------------------
    elif cmd == "run_live":
        from crane_signals.live_runtime import build_session, run_live

        extra = sys.argv[2:]
        config_path = _pop_option(extra, "-config")
        user_id = _pop_option(extra, "-user") or "anonymous"

        try:
            cfg = load_config(config_path)
        except (OSError, ValueError) as e:
            print(f"Invalid config: {e}")
            sys.exit(2)

        server_mode = False
        for arg in extra:
            if arg.isdigit():
                cfg = replace(cfg, live=replace(cfg.live, camera_index=int(arg)))
            elif arg.lower() == "-server":
                server_mode = True
            else:
                print("Unknown argument:", arg)
                sys.exit(2)

        session = build_session(cfg, user_id=user_id)

        # ---------------------------------------------------------------------
        # NORMALER LIVE-MODUS (OpenCV-Fenster)
        # ---------------------------------------------------------------------
        if not server_mode:
            run_live(cfg, session=session)
            return

        # ---------------------------------------------------------------------
        # SERVER-MODUS (Telemetry + WebSocket + Drill-Steuerung)
        # ---------------------------------------------------------------------
        from crane_signals.command_protocol import make_commit, make_state
        from crane_signals.telemetry_store import TELEMETRY
        from crane_signals.ws_server import SESSION, manager, start_server_background

        SESSION.bind(session)
        start_server_background()
        webbrowser.open("http://127.0.0.1:8010/api/telemetry")

        def on_commit(result, frame_bgr):
            TELEMETRY.push_commit(
                result.committed_signal,
                result.target,
                result.passed,
                evidence=result.evidence_path(),
                score=session.summary(),
            )
            manager.broadcast_sync(
                make_commit(result.committed_signal, result.target, result.passed, {"held_s": result.held_s})
            )

        def on_telemetry(phase, signal, progress, seconds_left, target, modality, debug):
            TELEMETRY.update(phase, signal, progress, seconds_left, target, modality, debug)
            manager.broadcast_sync(make_state(phase, signal, progress, {"target": target}))

        try:
            run_live(cfg, on_commit=on_commit, on_telemetry=on_telemetry, session=session)
        finally:
            SESSION.bind(None)
        return

    # -------------------------------------------------------------------------
    # 3) Nur Server (keine Kamera)
    # -------------------------------------------------------------------------
    elif cmd == "serve":
        from crane_signals.ws_server import run_server

        run_server()
        return

    else:
        print("Unbekannter Befehl:", cmd)
        sys.exit(2)


if __name__ == "__main__":
    main()
