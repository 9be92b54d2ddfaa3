import os
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from access import ContractError
from database import db, create_document, get_documents
from devchain import CONTRACT_TYPES, ChainError, ContractNotFound, DevChain, MethodNotFound
from schemas import CallRequest, DeployRequest, TimeRequest, TransactRequest, TransferRequest

app = FastAPI(title="Campus Contracts API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

chain = DevChain()


def get_chain() -> DevChain:
    return chain


# Helpers
def revert(e: ContractError) -> HTTPException:
    return HTTPException(status_code=400, detail={"reason": e.reason, "error": e.error})


def chain_failure(e: ChainError) -> HTTPException:
    if isinstance(e, (ContractNotFound, MethodNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def store(collection: str, document) -> Optional[str]:
    if db is None:
        return None
    try:
        return create_document(collection, document)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@app.get("/")
def read_root():
    return {"message": "Campus Contracts chain is running"}


# Chain endpoints
@app.get("/api/accounts")
def list_accounts(chain: DevChain = Depends(get_chain)):
    return {"accounts": jsonable_encoder(chain.list_accounts())}


@app.get("/api/accounts/{address}")
def get_account(address: str, chain: DevChain = Depends(get_chain)):
    return {"address": address, "balance": chain.balance_of(address)}


@app.get("/api/chain")
def chain_status(chain: DevChain = Depends(get_chain)):
    return {
        "block_number": chain.block_number,
        "timestamp": chain.timestamp,
        "contracts": len(chain.contracts),
        "contract_types": sorted(CONTRACT_TYPES),
    }


@app.post("/api/chain/time")
def set_time(payload: TimeRequest, chain: DevChain = Depends(get_chain)):
    try:
        if payload.timestamp is not None:
            chain.set_next_block_timestamp(payload.timestamp)
        if payload.increase:
            chain.increase_time(payload.increase)
    except ChainError as e:
        raise chain_failure(e)
    if payload.mine:
        chain.mine()
    return {"block_number": chain.block_number, "timestamp": chain.timestamp}


@app.post("/api/transfer")
def transfer(payload: TransferRequest, chain: DevChain = Depends(get_chain)):
    try:
        receipt = chain.send(payload.sender, payload.to, payload.value)
    except ContractError as e:
        raise revert(e)
    except ChainError as e:
        raise chain_failure(e)
    store("receipt", receipt)
    return jsonable_encoder(receipt)


# Contract endpoints
@app.post("/api/contracts")
def deploy_contract(payload: DeployRequest, chain: DevChain = Depends(get_chain)):
    try:
        receipt = chain.deploy(payload.contract, payload.sender, *payload.args)
    except ChainError as e:
        raise chain_failure(e)
    store("receipt", receipt)
    store("deployment", chain.deployments[-1])
    return {"address": receipt.contract_address, "receipt": jsonable_encoder(receipt)}


@app.get("/api/contracts")
def list_contracts(chain: DevChain = Depends(get_chain)):
    return {"contracts": jsonable_encoder(chain.deployments)}


@app.get("/api/contracts/{address}")
def describe_contract(address: str, chain: DevChain = Depends(get_chain)):
    contract = chain.contracts.get(address)
    if contract is None:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract.describe()


@app.post("/api/contracts/{address}/transact/{method}")
def transact(address: str, method: str, payload: TransactRequest, chain: DevChain = Depends(get_chain)):
    try:
        receipt = chain.transact(address, method, payload.sender, *payload.args, value=payload.value)
    except ContractError as e:
        raise revert(e)
    except ChainError as e:
        raise chain_failure(e)
    store("receipt", receipt)
    return jsonable_encoder(receipt)


@app.post("/api/contracts/{address}/call/{method}")
def call(address: str, method: str, payload: CallRequest, chain: DevChain = Depends(get_chain)):
    try:
        result = chain.call(address, method, *payload.args, sender=payload.sender)
    except ContractError as e:
        raise revert(e)
    except ChainError as e:
        raise chain_failure(e)
    return {"result": jsonable_encoder(result)}


@app.get("/api/logs")
def list_logs(address: Optional[str] = None, event: Optional[str] = None, chain: DevChain = Depends(get_chain)):
    return {"logs": jsonable_encoder(chain.get_logs(address=address, event=event))}


@app.get("/api/receipts")
def list_receipts(limit: int = 20):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    try:
        docs = get_documents("receipt", limit=limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
    for d in docs:
        d["_id"] = str(d["_id"])
    return {"receipts": jsonable_encoder(docs)}


@app.get("/test")
def test_database(chain: DevChain = Depends(get_chain)):
    response = {
        "backend": "✅ Running",
        "chain": f"✅ Block {chain.block_number}",
        "database": "⚠️  Not configured, receipts kept in memory only",
        "collections": [],
    }
    if db is not None:
        try:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = f"✅ Connected to {db.name}"
        except Exception as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
