JOIN = "join"
JOINED = "joined"
DISCONNECTED = "disconnected"
CODE_CHANGE = "code-change"
LEAVE = "leave"

OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"

SIGNALING_ACTIONS = (OFFER, ANSWER, ICE_CANDIDATE)

# **Wire envelope**
# - `type` = one of the action names above
# - `data` = event payload (camelCase keys, e.g. `roomId`, `displayName`)


def build_event(action: str, data: dict) -> dict:
    return {"type": action, "data": data}
