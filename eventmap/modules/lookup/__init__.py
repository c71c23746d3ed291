from eventmap.modules.lookup.client import build_id_to_name, fetch_id_to_name
from eventmap.modules.lookup.names import CARD_ID_COMMANDS, replace_card_ids

__all__ = ["CARD_ID_COMMANDS", "build_id_to_name", "fetch_id_to_name", "replace_card_ids"]
