# In-memory user registry backing the lookup that order creation depends on
import threading
from typing import Dict, List, Optional

from orderflow.shared.logger import ServiceLogger
from orderflow.users.schemas import User, UserCreate


class UserRegistry:
    def __init__(self, logger: Optional[ServiceLogger] = None):
        self.logger = logger or ServiceLogger("UserRegistry")
        self._users: Dict[int, User] = {}
        self._current_id = 1
        self._lock = threading.Lock()

    def create_user(self, data: UserCreate) -> User:
        with self._lock:
            user = User(id=self._current_id, **data.model_dump())
            self._users[user.id] = user
            self._current_id += 1
        self.logger.info("User registered", user_id=user.id)
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def list_users(self) -> List[User]:
        return list(self._users.values())
