from decimal import Decimal
from pathlib import Path

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from offer_portal.routers import customers, documents, offers, settings

app = FastAPI(title='Offer Portal')

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'
app.state.templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def _amount(value) -> str:
    return f'{Decimal(value or 0):,.2f}'


def _number(value) -> str:
    return f'{Decimal(value or 0).normalize():f}'


app.state.templates.env.filters['amount'] = _amount
app.state.templates.env.filters['number'] = _number

app.include_router(offers.router)
app.include_router(customers.router)
app.include_router(settings.router)
app.include_router(documents.router)


@app.get('/health')
def health() -> dict[str, str]:
    return {'status': 'ok'}
