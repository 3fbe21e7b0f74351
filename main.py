from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import uvicorn
import logging

from config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

from services.aggregation_service import aggregate
from services.analysis_service import AnalysisService
from services.budget_service import BudgetService
from services.data_source import (
    DataSource, SQLDataSource, MockDataSource,
    transaction_to_dict, budget_to_dict, category_to_dict
)
from database.database import init_db, get_db
from database.crud import (
    create_transaction, get_transaction_by_id, list_transactions, update_transaction, delete_transaction,
    get_category_by_id, create_category, update_category, delete_category,
    create_budget, get_budget_by_id, get_all_budgets, update_budget, delete_budget
)
from models.transaction import TransactionCreate, TransactionUpdate
from models.category import CategoryCreate, CategoryUpdate
from models.budget import BudgetCreate, BudgetUpdate

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database
    init_db()
    logger.info(f"Base initialisée ({'démo' if settings.IS_DEMO else settings.DATABASE_URL})")
    yield

app = FastAPI(title="Personal Finance API", version="1.0.0", lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
analysis_service = AnalysisService()
budget_service = BudgetService()

def get_data_source(db: Session = Depends(get_db)) -> DataSource:
    """Dependency: données de démo ou base SQL selon IS_DEMO"""
    if settings.IS_DEMO:
        return MockDataSource()
    return SQLDataSource(db)

def resolve_period(month: Optional[int], year: Optional[int]):
    """Mois/année courants par défaut"""
    now = datetime.now()
    return month or now.month, year or now.year

@app.get("/")
async def root():
    return {"message": "Personal Finance API"}

# Statistics & reports
@app.get("/api/statistics")
async def get_statistics(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    data_source: DataSource = Depends(get_data_source)
):
    """
    Statistiques du mois: résumé, ventilation par catégorie, transactions
    récentes, comparaison budget/réel et évolution sur le mois précédent
    """
    try:
        month, year = resolve_period(month, year)
        statistics = analysis_service.monthly_statistics(
            data_source, month, year,
            recent_limit=settings.RECENT_TRANSACTIONS_LIMIT
        )
        return JSONResponse(jsonable_encoder(statistics))
    except Exception as e:
        logger.error(f"Erreur lors du calcul des statistiques: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate statistics")

@app.get("/api/reports")
async def get_report(
    startMonth: Optional[int] = Query(None, ge=1, le=12),
    startYear: Optional[int] = Query(None, ge=2000),
    endMonth: Optional[int] = Query(None, ge=1, le=12),
    endYear: Optional[int] = Query(None, ge=2000),
    data_source: DataSource = Depends(get_data_source)
):
    """
    Rapport sur une plage de mois (par défaut le mois courant)
    """
    start = resolve_period(startMonth, startYear)
    end = resolve_period(endMonth, endYear)
    if (start[1], start[0]) > (end[1], end[0]):
        raise HTTPException(status_code=400, detail="La date de début doit précéder la date de fin")

    try:
        report = analysis_service.build_report(data_source, start, end)
        return JSONResponse(jsonable_encoder({
            "success": True,
            "start": {"month": start[0], "year": start[1]},
            "end": {"month": end[0], "year": end[1]},
            **report
        }))
    except Exception as e:
        logger.error(f"Erreur lors de la génération du rapport: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate report")

# Transaction endpoints
@app.get("/api/transactions")
async def get_transactions(
    type: Optional[str] = Query(None, pattern="^(income|expense)$"),
    category: Optional[str] = None,
    startDate: Optional[date] = None,
    endDate: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Récupère les transactions filtrées et paginées
    """
    try:
        transactions, pagination = list_transactions(
            db, type=type, category=category,
            start_date=startDate, end_date=endDate,
            page=page, limit=limit
        )
        return JSONResponse({
            "success": True,
            "transactions": [transaction_to_dict(t) for t in transactions],
            "pagination": pagination
        })
    except Exception as e:
        logger.error(f"Erreur lors de la récupération des transactions: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/transactions", status_code=201)
async def create_transaction_endpoint(transaction: TransactionCreate, db: Session = Depends(get_db)):
    """
    Crée une transaction
    """
    try:
        transaction_db = create_transaction(db, transaction)
        return JSONResponse({
            "success": True,
            "transaction": transaction_to_dict(transaction_db)
        }, status_code=201)
    except Exception as e:
        logger.error(f"Erreur lors de la création de la transaction: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/api/transactions/{transaction_id}")
async def get_transaction_endpoint(transaction_id: int, db: Session = Depends(get_db)):
    transaction = get_transaction_by_id(db, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction non trouvée")
    return JSONResponse({"success": True, "transaction": transaction_to_dict(transaction)})

@app.put("/api/transactions/{transaction_id}")
async def update_transaction_endpoint(
    transaction_id: int,
    transaction_update: TransactionUpdate,
    db: Session = Depends(get_db)
):
    """
    Met à jour une transaction
    """
    try:
        updated_transaction = update_transaction(db, transaction_id, transaction_update)
        if not updated_transaction:
            raise HTTPException(status_code=404, detail="Transaction non trouvée")

        return JSONResponse({
            "success": True,
            "transaction": transaction_to_dict(updated_transaction)
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur lors de la mise à jour de la transaction {transaction_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.delete("/api/transactions/{transaction_id}")
async def delete_transaction_endpoint(transaction_id: int, db: Session = Depends(get_db)):
    """
    Supprime une transaction spécifique
    """
    try:
        if not delete_transaction(db, transaction_id):
            raise HTTPException(status_code=404, detail="Transaction non trouvée")

        return JSONResponse({
            "success": True,
            "message": "Transaction supprimée avec succès",
            "id": transaction_id
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur lors de la suppression de la transaction {transaction_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

# Category endpoints
@app.get("/api/categories")
async def get_categories_endpoint(data_source: DataSource = Depends(get_data_source)):
    """
    Récupère toutes les catégories, triées par nom
    """
    try:
        return JSONResponse(jsonable_encoder({
            "success": True,
            "categories": data_source.fetch_categories()
        }))
    except Exception as e:
        logger.error(f"Erreur lors de la récupération des catégories: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch categories")

@app.post("/api/categories", status_code=201)
async def create_category_endpoint(category: CategoryCreate, db: Session = Depends(get_db)):
    """
    Crée une catégorie (le nom doit être unique)
    """
    try:
        db_category = create_category(db, category)
        if not db_category:
            raise HTTPException(status_code=400, detail="Category already exists")
        return JSONResponse({
            "success": True,
            "category": category_to_dict(db_category)
        }, status_code=201)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur lors de la création de la catégorie: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create category")

@app.get("/api/categories/{category_id}")
async def get_category_endpoint(category_id: int, db: Session = Depends(get_db)):
    category = get_category_by_id(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Catégorie non trouvée")
    return JSONResponse({"success": True, "category": category_to_dict(category)})

@app.put("/api/categories/{category_id}")
async def update_category_endpoint(
    category_id: int,
    category_update: CategoryUpdate,
    db: Session = Depends(get_db)
):
    """
    Met à jour une catégorie. Les transactions et budgets gardent l'ancien nom.
    """
    try:
        updated_category = update_category(db, category_id, category_update)
        if not updated_category:
            raise HTTPException(status_code=404, detail="Catégorie non trouvée")
        return JSONResponse({"success": True, "category": category_to_dict(updated_category)})
    except HTTPException:
        raise
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Category already exists")
    except Exception as e:
        logger.error(f"Erreur lors de la mise à jour de la catégorie {category_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.delete("/api/categories/{category_id}")
async def delete_category_endpoint(category_id: int, db: Session = Depends(get_db)):
    """
    Supprime une catégorie (sans cascade)
    """
    try:
        if not delete_category(db, category_id):
            raise HTTPException(status_code=404, detail="Catégorie non trouvée")
        return JSONResponse({
            "success": True,
            "message": "Catégorie supprimée avec succès",
            "id": category_id
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur lors de la suppression de la catégorie {category_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

# Budget endpoints
@app.post("/api/budgets", status_code=201)
async def create_budget_endpoint(budget: BudgetCreate, db: Session = Depends(get_db)):
    """
    Crée ou met à jour un budget pour une catégorie
    """
    try:
        db_budget = create_budget(db, budget)
        return JSONResponse({
            "success": True,
            "budget": budget_to_dict(db_budget)
        }, status_code=201)
    except Exception as e:
        logger.error(f"Erreur lors de la création du budget: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/api/budgets")
async def get_budgets_endpoint(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    db: Session = Depends(get_db)
):
    """
    Récupère tous les budgets, optionnellement filtrés par mois/année
    """
    try:
        budgets = get_all_budgets(db, month, year)
        return JSONResponse({
            "success": True,
            "budgets": [budget_to_dict(b) for b in budgets]
        })
    except Exception as e:
        logger.error(f"Erreur lors de la récupération des budgets: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/api/budgets/summary")
async def get_budgets_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    data_source: DataSource = Depends(get_data_source)
):
    """
    Récupère un résumé des budgets avec les dépenses réelles et leur statut
    """
    try:
        # Utiliser le mois/année actuel si non spécifié
        month, year = resolve_period(month, year)

        budgets = data_source.fetch_budgets(month, year)
        statistics = aggregate(data_source.fetch_transactions(month, year), budgets, month, year)
        summary = budget_service.budget_summary(budgets, statistics)

        return JSONResponse(jsonable_encoder({
            "success": True,
            "month": month,
            "year": year,
            "summary": summary
        }))
    except Exception as e:
        logger.error(f"Erreur lors du résumé des budgets: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/api/budgets/{budget_id}")
async def get_budget_endpoint(budget_id: int, db: Session = Depends(get_db)):
    budget = get_budget_by_id(db, budget_id)
    if not budget:
        raise HTTPException(status_code=404, detail="Budget non trouvé")
    return JSONResponse({"success": True, "budget": budget_to_dict(budget)})

@app.put("/api/budgets/{budget_id}")
async def update_budget_endpoint(budget_id: int, budget_update: BudgetUpdate, db: Session = Depends(get_db)):
    """
    Met à jour un budget
    """
    try:
        updated_budget = update_budget(db, budget_id, budget_update)
        if not updated_budget:
            raise HTTPException(status_code=404, detail="Budget non trouvé")

        return JSONResponse({
            "success": True,
            "budget": budget_to_dict(updated_budget)
        })
    except HTTPException:
        raise
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Un budget existe déjà pour cette catégorie et cette période")
    except Exception as e:
        logger.error(f"Erreur lors de la mise à jour du budget {budget_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.delete("/api/budgets/{budget_id}")
async def delete_budget_endpoint(budget_id: int, db: Session = Depends(get_db)):
    """
    Supprime un budget
    """
    try:
        if not delete_budget(db, budget_id):
            raise HTTPException(status_code=404, detail="Budget non trouvé")

        return JSONResponse({
            "success": True,
            "message": "Budget supprimé avec succès",
            "id": budget_id
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Erreur lors de la suppression du budget {budget_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
