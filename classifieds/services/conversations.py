import logging
from dataclasses import dataclass

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

OPENING_MESSAGE = "Olá! Tenho interesse no seu anúncio."

FIND_CONVERSATION_QUERY = """
SELECT id FROM messages
WHERE ad_id = $1
  AND ((sender_id = $2 AND receiver_id = $3) OR (sender_id = $3 AND receiver_id = $2))
ORDER BY created_at
LIMIT 1
"""


class OwnListingError(Exception):
    """A seller tried to contact themselves about their own ad"""


@dataclass
class ConversationHandle:
    message_id: str
    created: bool


async def start_conversation(buyer_id: str, seller_id: str, ad_id: str) -> ConversationHandle:
    """
    Reuse the buyer/seller thread about this ad, or open one with a first message.
    The returned id is where the client navigates next.
    """
    if buyer_id == seller_id:
        raise OwnListingError("This is your own ad")

    async with get_pool().acquire() as conn:
        existing = await conn.fetchrow(FIND_CONVERSATION_QUERY, ad_id, buyer_id, seller_id)
        if existing:
            return ConversationHandle(message_id=str(existing["id"]), created=False)

        query, values = QueryBuilder.build_insert_query(
            {
                "message": OPENING_MESSAGE,
                "sender_id": buyer_id,
                "receiver_id": seller_id,
                "ad_id": ad_id,
                "read": False,
            },
            "messages",
        )
        row = await conn.fetchrow(query, *values)

    logger.info(f"Conversation opened on ad {ad_id} by {buyer_id}")
    return ConversationHandle(message_id=str(row["id"]), created=True)
