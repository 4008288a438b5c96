import jwt
import datetime

# Propósito fijo de los tokens emitidos tras verificar un correo
TOKEN_PURPOSE = 'email_verified'


class JWTManager:
    """Gestor de tokens JWT que prueban el control de un correo"""

    def __init__(self, secret_key, algorithm='HS256', token_expiry_hours=0.25):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_expiry_hours = token_expiry_hours

    def generate_token(self, email):
        """
        Genera un token JWT para un correo recién verificado

        Args:
            email (str): Correo verificado (normalizado)

        Returns:
            str: Token JWT
        """
        ahora = datetime.datetime.now(datetime.timezone.utc)
        payload = {
            'sub': email,
            'purpose': TOKEN_PURPOSE,
            'exp': ahora + datetime.timedelta(hours=self.token_expiry_hours),
            'iat': ahora
        }

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token):
        """
        Verifica y decodifica un token JWT

        Args:
            token (str): Token JWT a verificar

        Returns:
            dict: Claims del token si es válido
            None: Si el token es inválido, expirado o de otro propósito
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

        if payload.get('purpose') != TOKEN_PURPOSE:
            return None
        return payload


def create_jwt_manager(app):
    """
    Crea y configura el gestor JWT para la aplicación

    Args:
        app: Instancia de Flask

    Returns:
        JWTManager: Instancia configurada, o None si no hay JWT_SECRET_KEY
    """
    secret_key = app.config.get('JWT_SECRET_KEY')
    if not secret_key:
        return None

    expiry_hours = float(app.config.get('JWT_EXPIRATION_HOURS', 0.25))

    return JWTManager(secret_key, token_expiry_hours=expiry_hours)
