"""JSON-safe dicts for API responses and event payloads (camelCase keys)."""


def _iso(value):
    return value.isoformat() if value else None


def user_dict(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
    }


def card_dict(card):
    return {
        "id": card.id,
        "listId": card.list_id,
        "boardId": card.board_id,
        "title": card.title,
        "description": card.description or "",
        "position": card.position,
        "dueDate": _iso(card.due_date),
        "completed": bool(card.completed),
        "completedAt": _iso(card.completed_at),
        "archived": bool(card.archived),
        "labels": list(card.labels or []),
        "assignees": [u.id for u in card.assignees],
        "creatorId": card.creator_id,
        "createdAt": _iso(card.created_at),
        "updatedAt": _iso(card.updated_at),
    }


def list_dict(board_list, cards=None):
    data = {
        "id": board_list.id,
        "boardId": board_list.board_id,
        "title": board_list.title,
        "position": board_list.position,
        "archived": bool(board_list.archived),
        "createdAt": _iso(board_list.created_at),
    }
    if cards is not None:
        data["cards"] = [card_dict(c) for c in cards]
    return data


def board_dict(board, lists=None, members=None):
    data = {
        "id": board.id,
        "title": board.title,
        "description": board.description or "",
        "workspaceId": board.workspace_id,
        "ownerId": board.owner_id,
        "visibility": board.visibility,
        "background": board.background,
        "closed": bool(board.closed),
        "labels": list(board.labels or []),
        "createdAt": _iso(board.created_at),
    }
    if lists is not None:
        data["lists"] = lists
    if members is not None:
        data["members"] = members
    return data


def member_dict(member):
    return {
        "userId": member.user_id,
        "role": member.role,
        "user": user_dict(member.user),
        "joinedAt": _iso(member.joined_at),
    }


def workspace_dict(workspace):
    return {
        "id": workspace.id,
        "name": workspace.name,
        "description": workspace.description or "",
        "ownerId": workspace.owner_id,
        "createdAt": _iso(workspace.created_at),
    }


def comment_dict(comment):
    return {
        "id": comment.id,
        "cardId": comment.card_id,
        "text": comment.text,
        "author": user_dict(comment.author),
        "createdAt": _iso(comment.created_at),
    }


def activity_dict(activity):
    return {
        "id": activity.id,
        "type": activity.type,
        "boardId": activity.board_id,
        "actor": user_dict(activity.actor),
        "description": activity.description,
        "cardId": activity.card_id,
        "listId": activity.list_id,
        "commentId": activity.comment_id,
        "data": activity.data or {},
        "createdAt": _iso(activity.created_at),
    }
