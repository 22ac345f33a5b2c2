import json
import os
import sys
import signal
import logging
import asyncio
from typing import Dict, Any, Optional
import websockets
from dotenv import load_dotenv

load_dotenv()

from command_engine import CommandEngine, success_event, error_event
from engine_errors import CommandEngineError, RelayError
from prompt_relay import PromptRelay, DEFAULT_MODEL
from scene_document import SceneDocument

# DEBUG also logs every property write
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] [agent] [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logger = logging.getLogger(__name__)

# Bridge message types
MESSAGE_TYPE_JOIN = "join"
MESSAGE_TYPE_PING = "ping"
MESSAGE_TYPE_PONG = "pong"
MESSAGE_TYPE_SYSTEM = "system"
MESSAGE_TYPE_PROGRESS_UPDATE = "progress_update"
MESSAGE_TYPE_UI_LOADED = "ui-loaded"
MESSAGE_TYPE_PROCESS_COMMAND = "process-command"
MESSAGE_TYPE_ERROR = "error"

DEFAULT_CHANNEL = "figma-command-default"


class CommandAgent:
    def __init__(
        self,
        bridge_url: str,
        channel: str,
        model: str,
        api_key: str,
        temperature: float = 0.2,
        relay_timeout: float = 60.0,
    ):
        self.bridge_url = bridge_url
        self.channel = channel
        self.websocket: Optional[Any] = None
        self.running = True
        # Seconds; doubled after each failed attempt
        self.reconnect_delay = 1
        self.max_reconnect_delay = 30
        self._keep_alive_task: Optional[asyncio.Task] = None
        self._current_request_id: Optional[str] = None

        self.model_name: str = model
        self.engine = CommandEngine(
            PromptRelay(model=model, api_key=api_key, temperature=temperature, timeout=relay_timeout)
        )
        logger.info(f"🧠 Command engine ready (model={model}, temperature={temperature}, timeout={relay_timeout}s)")

    async def _send_json(self, payload: Dict[str, Any]) -> None:
        """Safely send a JSON-serializable payload over the websocket if connected."""
        if not self.websocket:
            raise RuntimeError("WebSocket not connected")
        await self.websocket.send(json.dumps(payload, default=str))

    async def _send_progress(self, event: Dict[str, Any]) -> None:
        """Forward per-command executor progress to the plugin UI."""
        status = event.get("status")
        command_type = event.get("command_type")
        icons = {"command_started": "🛠️", "command_succeeded": "✅", "command_failed": "❗", "command_skipped": "⏭️"}
        await self._send_json({
            "type": MESSAGE_TYPE_PROGRESS_UPDATE,
            "message": {
                "status": status,
                "message": f"{icons.get(status, '•')} {command_type}",
                "data": {**event, "id": self._current_request_id},
            }
        })

    async def connect(self) -> bool:
        """Open the bridge socket, join the channel as agent and start keep-alive."""
        try:
            logger.info(f"🌉 Connecting to bridge at {self.bridge_url}")
            # Page snapshots can be large
            self.websocket = await websockets.connect(self.bridge_url, max_size=None)
            await self._join_channel()
            self._keep_alive_task = asyncio.create_task(self._websocket_keep_alive())
            self.reconnect_delay = 1
            return True
        except Exception as e:
            logger.error(f"❌ Bridge connection failed: {e}")
            return False

    async def _join_channel(self) -> None:
        await self._send_json({"type": MESSAGE_TYPE_JOIN, "role": "agent", "channel": self.channel})
        await self._send_json({"type": MESSAGE_TYPE_PING})
        logger.info(f"📡 Joined channel {self.channel!r} as agent")

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """Route one bridge message to its handler."""
        msg_type = message.get("type")
        logger.debug(f"📨 Bridge message: type={msg_type!r}")

        handlers = {
            MESSAGE_TYPE_SYSTEM: self._handle_system,
            MESSAGE_TYPE_PONG: self._handle_pong,
            MESSAGE_TYPE_UI_LOADED: self._handle_ui_loaded,
            MESSAGE_TYPE_PROCESS_COMMAND: self._handle_process_command,
            MESSAGE_TYPE_ERROR: self._handle_bridge_error,
        }
        handler = handlers.get(msg_type, self._handle_unknown)
        await handler(message)

    async def _handle_system(self, message: Dict[str, Any]) -> None:
        logger.info(f"🔧 Bridge: {message.get('message')}")

    async def _handle_pong(self, _: Dict[str, Any]) -> None:
        logger.debug("🏓 pong")

    async def _handle_ui_loaded(self, _: Dict[str, Any]) -> None:
        logger.info("🖥️ Plugin UI loaded")

    async def _reply(self, response: Dict[str, Any]) -> None:
        response["id"] = self._current_request_id
        await self._send_json(response)
        logger.info(f"📤 Sent {response['type']} for request {self._current_request_id}")

    async def _handle_process_command(self, message: Dict[str, Any]) -> None:
        """Run one instruction against the page snapshot and report the outcome.

        Batches run inline: the listen loop does not read the next message
        until this one has completed or failed.
        """
        self._current_request_id = message.get("id")
        payload = message.get("payload")
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            logger.error(f"❌ process-command payload is not an object: {payload!r}")
            await self._reply(error_event(RelayError(
                "Command payload must be an object with a 'command' string",
                code="invalid_prompt",
                details={"payload_type": type(payload).__name__},
            )))
            return

        instruction = payload.get("command")
        logger.info(f"💬 Received instruction: {instruction!r}")

        try:
            document = SceneDocument.from_snapshot(payload.get("snapshot"))
        except Exception as e:
            logger.error(f"❌ Invalid page snapshot: {e}")
            await self._reply(error_event(CommandEngineError(f"Invalid page snapshot: {e}", code="invalid_snapshot")))
            return

        try:
            result = await self.engine.process(document, instruction, progress_hook=self._send_progress)
            response = success_event(result)
        except CommandEngineError as e:
            logger.error(f"❌ Instruction failed: {e}")
            response = error_event(e)
        except Exception as e:
            logger.error(f"❌ Unexpected error processing instruction: {e}")
            response = error_event(e)

        # Earlier commands of a failed batch still changed the page
        response["document"] = document.to_snapshot()
        response["notifications"] = list(document.notifications)
        await self._reply(response)

    async def _handle_bridge_error(self, message: Dict[str, Any]) -> None:
        logger.error(f"❌ Bridge error: {message.get('message', 'Unknown error')}")

    async def _handle_unknown(self, message: Dict[str, Any]) -> None:
        logger.debug(f"Ignoring message type: {message.get('type')!r}")

    async def listen(self) -> None:
        """Dispatch bridge messages one at a time until the socket closes."""
        logger.info("🎧 Waiting for plugin instructions")
        try:
            async for raw_message in self.websocket:
                if not self.running:
                    break
                if not raw_message:
                    continue
                try:
                    message = json.loads(raw_message)
                except json.JSONDecodeError as e:
                    logger.error(f"❌ Dropping undecodable message: {e}")
                    continue
                if not isinstance(message, dict):
                    logger.warning(f"⚠️ Dropping non-object message: {raw_message[:200]}")
                    continue
                try:
                    await self.handle_message(message)
                except Exception as e:
                    logger.error(f"❌ Error handling {message.get('type')!r} message: {e}")
        except websockets.ConnectionClosed as e:
            logger.warning(f"📴 Bridge connection closed: {e}")
        except asyncio.CancelledError:
            logger.info("🛑 Listen loop cancelled")

    async def _websocket_keep_alive(self, interval: int = 30) -> None:
        """Ping the bridge every `interval` seconds; stop on the first missed pong."""
        try:
            while self.running and self.websocket:
                await asyncio.sleep(interval)
                websocket = self.websocket
                if websocket is None:
                    return
                try:
                    await asyncio.wait_for(await websocket.ping(), timeout=10)
                except asyncio.TimeoutError:
                    logger.warning("💔 Keep-alive pong timed out")
                    return
                except Exception as e:
                    logger.warning(f"💔 Keep-alive ping failed: {e}")
                    return
        except asyncio.CancelledError:
            pass

    async def run_with_reconnect(self) -> None:
        """Stay attached to the bridge, backing off exponentially between attempts."""
        while self.running:
            if await self.connect():
                await self.listen()
            self._stop_keep_alive()
            if not self.running:
                break
            logger.info(f"🔁 Reconnecting in {self.reconnect_delay}s")
            await asyncio.sleep(self.reconnect_delay)
            self.reconnect_delay = min(self.reconnect_delay * 2, self.max_reconnect_delay)

    def _stop_keep_alive(self) -> None:
        if self._keep_alive_task and not self._keep_alive_task.done():
            self._keep_alive_task.cancel()
        self._keep_alive_task = None

    def shutdown(self) -> None:
        logger.info("👋 Shutting down command agent")
        self.running = False
        self._stop_keep_alive()
        self.websocket = None


CLI_OVERRIDES = {
    "--channel": "channel",
    "--bridge-url": "bridge_url",
    "--model": "model",
    "--api-key": "api_key",
}


def get_config(argv: Optional[list] = None) -> Dict[str, Any]:
    """Read agent settings from the environment; `--key=value` arguments win."""
    argv = sys.argv[1:] if argv is None else argv
    config: Dict[str, Any] = {
        "bridge_url": os.getenv("BRIDGE_URL", "ws://localhost:3055"),
        "channel": os.getenv("FIGMA_CHANNEL"),
        "model": os.getenv("LITELLM_MODEL", DEFAULT_MODEL),
        "api_key": os.getenv("LITELLM_API_KEY"),
        "temperature": float(os.getenv("RELAY_TEMPERATURE", "0.2")),
        "relay_timeout": float(os.getenv("RELAY_TIMEOUT", "60.0")),
    }

    for arg in argv:
        flag, sep, value = arg.partition("=")
        if sep and flag in CLI_OVERRIDES:
            config[CLI_OVERRIDES[flag]] = value
        else:
            logger.warning(f"⚠️ Ignoring unrecognised argument: {arg}")

    if not config["channel"]:
        config["channel"] = DEFAULT_CHANNEL
        logger.info(f"No channel specified, using default: {DEFAULT_CHANNEL}")

    if not config["api_key"]:
        logger.error("LITELLM_API_KEY environment variable is required")
        sys.exit(1)

    return config


def main():
    config = get_config()
    logger.info(
        f"🚀 Starting Figma command agent (bridge={config['bridge_url']}, "
        f"channel={config['channel']}, model={config['model']})"
    )
    agent = CommandAgent(**config)

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}")
        agent.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        asyncio.run(agent.run_with_reconnect())
    except KeyboardInterrupt:
        logger.info("Agent interrupted")
    finally:
        agent.shutdown()


if __name__ == "__main__":
    main()
