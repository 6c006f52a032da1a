from notes_sync.keys import ViewKey, pinned_notes, public_notes, user_note_count, user_notes
from notes_sync.ledger.models import Note
from notes_sync.sync.mutations import (
    CreateNote,
    DeleteNote,
    Mutation,
    TipNote,
    TogglePin,
    ToggleVisibility,
    UpdateNote,
)


def affected_views(mutation: Mutation, actor: str, target: Note | None = None) -> list[ViewKey]:
    """Read views a confirmed mutation makes out of date.

    ``actor`` is the address that sent the mutation; for every author-only
    operation the ledger guarantees it is the note's author. ``target`` is the
    cached copy of the note, when one is known.
    """
    if isinstance(mutation, CreateNote):
        keys = [user_notes(actor)]
        if mutation.is_public:
            keys.append(public_notes())
        keys.append(user_note_count(actor))
        return keys

    if isinstance(mutation, UpdateNote):
        keys = [user_notes(actor)]
        # unknown visibility: refresh the public list rather than risk missing it
        if target is None or target.is_public:
            keys.append(public_notes())
        return keys

    if isinstance(mutation, DeleteNote):
        return [user_notes(actor), public_notes(), pinned_notes(actor), user_note_count(actor)]

    if isinstance(mutation, ToggleVisibility):
        return [user_notes(actor), public_notes()]

    if isinstance(mutation, TogglePin):
        return [pinned_notes(actor), user_notes(actor)]

    if isinstance(mutation, TipNote):
        keys = [public_notes()]
        if target is not None:
            keys.append(user_notes(target.author))
        return keys

    raise TypeError(f"unsupported mutation: {type(mutation).__name__}")
