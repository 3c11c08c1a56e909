import logging
import signal
from typing import Optional

from app_config import AppConfig, AppConfigurationError, load_app_config, resolve_config_path
from pomodoro import PomodoroTimer
from presence import CommandIdleMonitor, SuspendDetector
from runtime import RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from runtime.config_watch import ConfigWatcher
from runtime.events import QueueEventPublisher, ShutdownRequestedEvent
from server import ServerConfigurationError, UIServer, UIServerConfig
from storage import JsonStateStore, MemoryStateStore


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("pomodoro_app")


def setup_signal_handlers(publisher: QueueEventPublisher) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        publisher.publish(ShutdownRequestedEvent(reason=signal.Signals(signum).name))

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def build_idle_monitor(app_config: AppConfig, logger: logging.Logger) -> Optional[CommandIdleMonitor]:
    command = app_config.presence.idle_command
    if not command:
        if app_config.timer.pause_when_idle:
            logger.warning(
                "pause_when_idle is enabled but no idle_command is set; "
                "idle pauses end only on start."
            )
        return None
    return CommandIdleMonitor.from_command(
        command,
        poll_seconds=app_config.presence.idle_poll_seconds,
        logger=logging.getLogger("presence.idle"),
    )


def main() -> int:
    """Run the pomodoro timer service."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config(str(config_path))
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error(f"App configuration error: {error}")
        return 1

    ui_server: Optional[UIServer] = None
    try:
        server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error(f"UI server configuration error: {error}")
        return 1
    if server_config.enabled:
        ui_server = UIServer(config=server_config, logger=logging.getLogger("ui_server"))

    if app_config.storage.state_file:
        store = JsonStateStore(app_config.storage.state_file, logger=logging.getLogger("storage"))
        logger.info("Timer state file: %s", app_config.storage.state_file)
    else:
        store = MemoryStateStore()
        logger.warning("No state file configured; timer state will not survive restarts.")

    idle_monitor = build_idle_monitor(app_config, logger)
    timer = PomodoroTimer(
        settings=app_config.timer,
        store=store,
        idle_monitor=idle_monitor,
        tick_interval_seconds=app_config.runtime.tick_interval_seconds,
        logger=logging.getLogger("pomodoro"),
    )

    suspend_detector: Optional[SuspendDetector] = None
    if app_config.presence.resume_detection:
        suspend_detector = SuspendDetector(
            poll_seconds=app_config.presence.resume_poll_seconds,
            threshold_seconds=app_config.presence.resume_threshold_seconds,
            logger=logging.getLogger("presence.resume"),
        )

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logging.getLogger("runtime"),
            app_config=app_config,
            timer=timer,
            ui_server=ui_server,
            idle_monitor=idle_monitor,
            suspend_detector=suspend_detector,
            config_watcher=ConfigWatcher(
                config_path,
                app_config.timer,
                logger=logging.getLogger("runtime"),
            ),
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
        )
    )
    return engine.run()


if __name__ == "__main__":
    raise SystemExit(main())
