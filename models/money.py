from decimal import Decimal
from pydantic import PlainSerializer
from typing import Annotated

# Montant au centime, sérialisé en nombre dans les réponses JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
