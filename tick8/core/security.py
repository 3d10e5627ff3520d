from fastapi import HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from starlette.status import HTTP_401_UNAUTHORIZED

# Le fournisseur d'identité (passerelle) a déjà vérifié le token et
# transmet l'email de l'utilisateur : on lui fait confiance sans revérifier.
user_header = APIKeyHeader(name="x-user-email", auto_error=False)


def get_current_user_id(user_email: str = Security(user_header)) -> str:
    if user_email and user_email.strip():
        return user_email.strip()
    raise HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail="Utilisateur non identifié",
    )
