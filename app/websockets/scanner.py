"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Live ISBN scanning via WebSocket connection.

Protocol:
---------
1. Client sends init: {"type": "init", "source": "client"|"camera",
   "facing": "environment"|"user"}
2. With source=client, client sends frames as base64:
   {"type": "frame", "frame": "<base64 jpeg>"}
3. Client may type an ISBN at any time: {"type": "manual", "text": "..."}
4. Client sends {"type": "cancel"} to abort the scan, or {"type": "stop"}
   to abort and close the connection

Server messages:
---------------
    init       Scan session started
    status     Transient feedback (e.g. rejected candidate)
    accepted   {"isbn", "source"}
    cancelled  {"reason"}
    failed     {"code", "message", "manual_entry": true}
    error      {"code", "message"}

After "failed" the connection stays open so the ISBN can still be typed.

==============================================================================
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.core.dependencies import get_scan_service
from app.scanner import FacingMode, PushedFrameDevice, ScanOutcome, ScanSession, ScanStatus
from app.services import ScanService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for live scanning WebSocket connections.

    Manages the lifecycle of a scanning session including:
    - Session start (client frames or server camera)
    - Frame forwarding
    - Manual entry
    - Outcome reporting
    """

    def __init__(self, websocket: WebSocket, scan_service: ScanService):
        self._websocket = websocket
        self._scan_service = scan_service
        self._session: Optional[ScanSession] = None
        self._run_task: Optional[asyncio.Task] = None
        self._frame_count = 0

    @property
    def scanning(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send error message to client."""
        await self._websocket.send_json({
            "type": "error",
            "code": code,
            "message": message
        })

    async def send_status(self, message: str) -> None:
        await self._websocket.send_json({"type": "status", "message": message})

    async def send_outcome(self, outcome: ScanOutcome) -> None:
        """Report a session's outcome."""
        if outcome.status == ScanStatus.ACCEPTED:
            await self._websocket.send_json({
                "type": "accepted",
                "isbn": outcome.identifier,
                "source": outcome.source.value
            })
        elif outcome.status == ScanStatus.CANCELLED:
            await self._websocket.send_json({
                "type": "cancelled",
                "reason": outcome.reason
            })
        else:
            await self._websocket.send_json({
                "type": "failed",
                "code": outcome.error_code,
                "message": outcome.reason,
                "manual_entry": True
            })

    # =========================================================================
    # MESSAGE HANDLERS
    # =========================================================================

    async def handle_init(self, data: dict) -> None:
        """Start a scan session."""
        if self.scanning:
            await self.send_error("A scan is already running", "SCAN_ACTIVE")
            return

        source = data.get("source", "client")
        if source not in ("client", "camera"):
            await self.send_error(f"Unknown source: {source}", "INVALID_SOURCE")
            return

        try:
            facing = FacingMode(data.get("facing", FacingMode.ENVIRONMENT.value))
        except ValueError:
            await self.send_error("facing must be 'environment' or 'user'", "INVALID_FACING")
            return

        logger.info(f"Init: source={source}, facing={facing.value}")

        self._frame_count = 0
        self._session = self._scan_service.create_session(
            remote=(source == "client"),
            facing=facing,
            on_status=self.send_status
        )
        self._run_task = asyncio.create_task(self._session.run())

        await self._websocket.send_json({
            "type": "init",
            "source": source,
            "facing": facing.value
        })

    def handle_frame(self, data: dict) -> None:
        """Forward a client frame to the session's device."""
        session = self._session
        capture = session.capture_session if session else None

        if capture is None or not isinstance(capture.device_handle, PushedFrameDevice):
            return

        try:
            frame = self._scan_service.decode_image(data.get("frame") or "")
        except ValueError as e:
            logger.debug(f"Dropping frame: {e}")
            return

        self._frame_count += 1
        capture.device_handle.push(frame)

    async def handle_manual(self, data: dict) -> None:
        """Validate a typed ISBN; a valid one ends a running scan."""
        text = data.get("text")

        if self._session is None:
            is_valid, isbn, error = self._scan_service.validate_manual(text)
            preempts = False
        else:
            preempts = not self._session.is_finished
            is_valid, isbn, error = self._session.submit_manual(text)

        if not is_valid:
            await self.send_error(error, "INVALID_ISBN")
            return

        # A running session reports the outcome itself
        if not preempts:
            await self._websocket.send_json({
                "type": "accepted",
                "isbn": isbn,
                "source": "manual"
            })

    async def finish_scan(self) -> None:
        """Wait for the running session and report its outcome."""
        task, self._run_task = self._run_task, None
        if task is None:
            return
        outcome = await task
        await self.send_outcome(outcome)

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("📱 Scanner WebSocket connected")

        receive_task = asyncio.create_task(self._websocket.receive_json())

        try:
            while True:
                waiting = {receive_task}
                if self._run_task is not None:
                    waiting.add(self._run_task)

                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if self._run_task is not None and self._run_task in done:
                    await self.finish_scan()

                if receive_task not in done:
                    continue

                data = receive_task.result()
                receive_task = asyncio.create_task(self._websocket.receive_json())
                msg_type = data.get("type")

                if msg_type == "init":
                    await self.handle_init(data)

                elif msg_type == "frame":
                    self.handle_frame(data)

                elif msg_type == "manual":
                    await self.handle_manual(data)

                elif msg_type == "cancel":
                    if self._session is not None:
                        self._session.cancel("Scan cancelled by user")

                elif msg_type == "stop":
                    logger.info("🛑 Client requested stop")
                    if self._session is not None:
                        self._session.cancel("Scan stopped by user")
                    await self.finish_scan()
                    await self._websocket.close()
                    break

                else:
                    await self.send_error(f"Unknown message type: {msg_type}", "UNKNOWN_MESSAGE")

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            try:
                await self.send_error(str(e))
            except Exception:
                logger.debug("Could not deliver error to client")
        finally:
            receive_task.cancel()
            await self._shutdown()
            logger.info("✅ Scanner WebSocket closed")

    async def _shutdown(self) -> None:
        if self._session is not None:
            self._session.stop()

        task, self._run_task = self._run_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    scan_service: ScanService = Depends(get_scan_service)
):
    """Live ISBN scanning via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, scan_service)
    await handler.run()
