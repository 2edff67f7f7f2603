import asyncio
import os
import socket
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from services.echo_peer.app.core.protocol import PeerModel
from services.echo_peer.app.core.state import ReplyMode

HTTP_HOST = os.getenv("PEER_HTTP_HOST", "127.0.0.1")
HTTP_PORT = int(os.getenv("PEER_HTTP_PORT", "18000"))

UDP_HOST = os.getenv("PEER_UDP_HOST", "127.0.0.1")
UDP_PORT = int(os.getenv("PEER_UDP_PORT", "19000"))

@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((UDP_HOST, UDP_PORT))
    transport, _ = await loop.create_datagram_endpoint(
        lambda: UdpProto(sock),
        sock=sock,
    )
    app.state.udp_transport = transport
    try:
        yield
    finally:
        transport.close()

app = FastAPI(title="Echo Peer", version="0.1.0", lifespan=lifespan)

MODEL = PeerModel()

class FaultsIn(BaseModel):
    delay_ms: int = Field(0, ge=0, le=5000)
    drop_rate: float = Field(0.0, ge=0.0, le=1.0)

class ModeIn(BaseModel):
    mode: ReplyMode
    payload: Optional[str] = None
    pad_to: int = Field(0, ge=0, le=65507)

def _faults() -> dict:
    return {
        "delay_ms": MODEL.faults.delay_ms,
        "drop_rate": MODEL.faults.drop_rate,
    }

@app.get("/health")
def health():
    return {"status": "ok", "mode": MODEL.mode.value}

@app.get("/status")
def status():
    return {
        "mode": MODEL.mode.value,
        "pad_to": MODEL.pad_to,
        "requests": MODEL.requests,
        "replies": MODEL.replies,
        "reset_count": MODEL.reset_count,
        "last_request": MODEL.last_request.decode("latin-1"),
        "faults": _faults(),
    }

@app.post("/control/reset")
def reset():
    MODEL.reset()
    return {"status": "reset", "reset_count": MODEL.reset_count, "mode": MODEL.mode.value}

@app.post("/control/mode")
def set_mode(m: ModeIn):
    payload = (m.payload or "").encode()
    try:
        MODEL.configure(m.mode, payload, m.pad_to)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "mode_updated", "mode": MODEL.mode.value, "pad_to": MODEL.pad_to}

@app.get("/control/faults")
def get_faults():
    return _faults()

@app.post("/control/faults")
def set_faults(f: FaultsIn):
    MODEL.faults.delay_ms = f.delay_ms
    MODEL.faults.drop_rate = f.drop_rate
    return {"status": "faults_updated", "faults": f.model_dump()}

class UdpProto(asyncio.DatagramProtocol):
    def __init__(self, sock: socket.socket):
        self.sock = sock

    def connection_made(self, transport):
        # stored for replies sent from datagram_received / call_later
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        loop = asyncio.get_running_loop()

        if MODEL.faults.should_drop():
            return

        reply = MODEL.reply_for(data)
        if reply is None:
            return

        # schedule send (with optional delay)
        delay = MODEL.faults.delay_s
        if delay > 0:
            loop.call_later(delay, self.send_reply, reply, addr)
        else:
            self.send_reply(reply, addr)

    def send_reply(self, reply: bytes, addr) -> None:
        if reply:
            self.transport.sendto(reply, addr)
        else:
            # the asyncio transport silently skips empty payloads before 3.13
            self.sock.sendto(reply, addr)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=HTTP_HOST,
        port=HTTP_PORT,
        reload=False)
