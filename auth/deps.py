# auth/deps.py
from typing import Annotated

from fastapi import Depends

from .jwt import Identity, get_current_user

CurrentUserDep = Annotated[Identity, Depends(get_current_user)]
