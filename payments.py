"""
Payment scripts

Client-side orchestration against the Campus Contracts API: deploy the
contracts, persist their addresses to a JSON file and walk each contract
through its demo flow. Calls are issued one at a time; the first failed
transaction aborts the flow with its revert reason.

    python payments.py deploy --output deployment.json
    python payments.py all --url http://127.0.0.1:8000
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import httpx

from devchain import from_wei, to_wei

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://127.0.0.1:8000"


class ClientError(Exception):
    pass


class TransactionFailed(ClientError):
    def __init__(self, reason: str, error: str = "ContractError"):
        super().__init__(reason)
        self.reason = reason
        self.error = error


class ChainClient:
    def __init__(self, url: Optional[str] = None, http: Optional[httpx.Client] = None):
        if http is None:
            http = httpx.Client(base_url=url or os.getenv("CHAIN_API_URL", DEFAULT_URL), timeout=30.0)
        self.http = http

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        response = self.http.request(method, path, json=payload)
        if response.status_code >= 400:
            detail = response.json().get("detail")
            if isinstance(detail, dict) and "reason" in detail:
                raise TransactionFailed(detail["reason"], detail.get("error", "ContractError"))
            raise ClientError("%s %s failed (%d): %s" % (method, path, response.status_code, detail))
        return response.json()

    def accounts(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/accounts")["accounts"]

    def balance(self, address: str) -> int:
        return self._request("GET", "/api/accounts/%s" % address)["balance"]

    def status(self) -> Dict[str, Any]:
        return self._request("GET", "/api/chain")

    def set_next_block_timestamp(self, timestamp: int) -> Dict[str, Any]:
        return self._request("POST", "/api/chain/time", {"timestamp": timestamp, "mine": True})

    def deploy(self, name: str, sender: str, *args) -> str:
        return self._request("POST", "/api/contracts",
                             {"contract": name, "sender": sender, "args": list(args)})["address"]

    def transact(self, address: str, method: str, sender: str, *args, value: int = 0) -> Dict[str, Any]:
        return self._request("POST", "/api/contracts/%s/transact/%s" % (address, method),
                             {"sender": sender, "value": value, "args": list(args)})

    def call(self, address: str, method: str, *args, sender: Optional[str] = None) -> Any:
        return self._request("POST", "/api/contracts/%s/call/%s" % (address, method),
                             {"sender": sender, "args": list(args)})["result"]

    def send(self, sender: str, to: str, value: int) -> Dict[str, Any]:
        return self._request("POST", "/api/transfer", {"sender": sender, "to": to, "value": value})

    def contract(self, address: str, sender: str) -> "RemoteContract":
        abi = self._request("GET", "/api/contracts/%s" % address)["abi"]
        return RemoteContract(self, address, abi, sender)


class RemoteContract:
    def __init__(self, client: ChainClient, address: str, abi: Dict[str, str], sender: str):
        self.client = client
        self.address = address
        self.abi = abi
        self.sender = sender

    def connect(self, sender: str) -> "RemoteContract":
        return RemoteContract(self.client, self.address, self.abi, sender)

    def __getattr__(self, method: str):
        kind = self.abi.get(method)
        if kind is None:
            raise AttributeError(method)
        if kind == "view":
            return lambda *args: self.client.call(self.address, method, *args, sender=self.sender)
        return lambda *args, value=0: self.client.transact(self.address, method, self.sender, *args,
                                                           value=value)


class ContractDeployer:
    def __init__(self, client: ChainClient):
        self.client = client
        self.accounts: List[str] = []
        self.deployed_contracts: Dict[str, Dict[str, str]] = {}

    def initialize(self):
        self.accounts = [a["address"] for a in self.client.accounts()]
        logger.info("Available accounts: %d", len(self.accounts))
        for i, address in enumerate(self.accounts[:5]):
            logger.info("Account %d: %s - %s ETH", i, address, from_wei(self.client.balance(address)))

    def deploy_contract(self, name: str, args: Optional[list] = None, deployer_index: int = 0) -> str:
        deployer = self.accounts[deployer_index]
        logger.info("=== Deploying %s Contract === (deployer %s, args %s)", name, deployer, args or [])
        address = self.client.deploy(name, deployer, *(args or []))
        logger.info("%s deployed at: %s", name, address)
        self.deployed_contracts[name] = {"address": address, "deployer": deployer}
        return address

    def deploy_all(self) -> Dict[str, Dict[str, str]]:
        owner, teacher, invigilator, warden = self.accounts[:4]
        self.deploy_contract("TestExam", [teacher, invigilator])
        self.deploy_contract("HostelSnacks")
        self.deploy_contract("CollegeBreakfast", [warden])
        self.deploy_contract("Wallet")
        logger.info("=== All Contracts Deployed Successfully ===")
        for name, info in self.deployed_contracts.items():
            logger.info("%s: %s", name, info["address"])
        return self.deployed_contracts

    def get_contract_address(self, name: str) -> str:
        if name not in self.deployed_contracts:
            raise ClientError("Contract %s not deployed" % name)
        return self.deployed_contracts[name]["address"]

    def save_deployment_info(self, filename: str = "deployment.json") -> str:
        with open(filename, "w") as f:
            json.dump(self.deployed_contracts, f, indent=2)
        logger.info("Deployment info saved to: %s", filename)
        return filename

    def load_deployment_info(self, filename: str = "deployment.json") -> Optional[Dict[str, Dict[str, str]]]:
        if not os.path.exists(filename):
            return None
        with open(filename) as f:
            self.deployed_contracts = json.load(f)
        logger.info("Loaded deployment info: %s", self.deployed_contracts)
        return self.deployed_contracts


# Demo flows

def run_wallet_demo(client: ChainClient, accounts: List[str], address: Optional[str] = None) -> Dict[str, Any]:
    owner, depositor1, depositor2 = accounts[0], accounts[4], accounts[5]
    address = address or client.deploy("Wallet", owner)
    wallet = client.contract(address, owner)

    for depositor, amount in [(depositor1, "0.1"), (depositor2, "0.05"), (depositor1, "0.02")]:
        logger.info("Deposit of %s ETH from %s", amount, depositor)
        wallet.connect(depositor).deposit(value=to_wei(amount))

    logger.info("Withdrawal of 0.05 ETH")
    wallet.withdraw(to_wei("0.05"))
    logger.info("Refund of 0.03 ETH to %s", depositor1)
    wallet.refund_depositor(depositor1, to_wei("0.03"))

    stats = {
        "balance": wallet.get_balance(),
        "total_deposits": wallet.total_deposits(),
        "depositors": wallet.get_all_depositors(),
        "balances": {d: wallet.get_depositor_balance(d) for d in wallet.get_all_depositors()},
    }
    logger.info("Wallet balance %s ETH, %d deposits from %d depositors", from_wei(stats["balance"]),
                stats["total_deposits"], len(stats["depositors"]))
    return stats


def run_snacks_demo(client: ChainClient, accounts: List[str], address: Optional[str] = None) -> Dict[str, Any]:
    owner, seller, buyer1, buyer2 = accounts[0], accounts[4], accounts[5], accounts[6]
    address = address or client.deploy("HostelSnacks", owner)
    snacks = client.contract(address, owner)

    snacks.connect(seller).register_seller()
    snacks.connect(buyer1).register_buyer("alice")
    snacks.connect(buyer2).register_buyer("bob")

    menu = [
        {"name": "Chips", "price": "0.001", "quantity": 50, "id": "chips_001"},
        {"name": "Cookies", "price": "0.002", "quantity": 30, "id": "cookies_001"},
        {"name": "Soda", "price": "0.0015", "quantity": 40, "id": "soda_001"},
    ]
    for item in menu:
        logger.info("Adding snack: %s", item["name"])
        snacks.connect(seller).add_snack(item["name"], to_wei(item["price"]), item["quantity"], item["id"])

    for buyer, snack_id, quantity in [(buyer1, "chips_001", 2), (buyer2, "cookies_001", 1),
                                      (buyer1, "soda_001", 3)]:
        snack = snacks.get_snack(snack_id)
        total = snack["price"] * quantity
        logger.info("Buyer %s purchasing %d of %s for %s ETH", buyer, quantity, snack_id, from_wei(total))
        snacks.connect(buyer).buy_snack(snack_id, quantity, value=total)

    logger.info("Processing refund of 0.001 ETH for buyer %s", buyer1)
    snacks.refund_buyer(buyer1, to_wei("0.001"))

    return {
        "snacks": {item["id"]: snacks.get_snack(item["id"]) for item in menu},
        "buyers": {buyer1: snacks.get_buyer(buyer1), buyer2: snacks.get_buyer(buyer2)},
        "seller": snacks.get_seller(seller),
    }


def run_exam_demo(client: ChainClient, accounts: List[str], address: Optional[str] = None) -> Dict[str, Any]:
    owner, teacher, invigilator, student = accounts[0], accounts[1], accounts[2], accounts[7]
    address = address or client.deploy("TestExam", owner, teacher, invigilator)
    exam = client.contract(address, teacher)

    now = client.status()["timestamp"]
    start_time, end_time = now + 300, now + 3900
    fee = to_wei("0.01")
    exam.set_exam_details("Mathematics 101", "Basic algebra and calculus", fee, 3600, start_time, end_time)
    exam.register_student_public(student)
    exam.open_exam(fee, 3600, start_time, end_time)

    logger.info("Student %s paying %s ETH exam fee", student, from_wei(fee))
    exam.connect(student).pay_for_exam(value=fee)

    client.set_next_block_timestamp(start_time + 5)
    exam.connect(student).start_exam()
    exam.connect(student).submit_exam_public()

    details = exam.get_exam_details()
    logger.info("Final exam details: %s", details)
    return details


def run_breakfast_demo(client: ChainClient, accounts: List[str], address: Optional[str] = None) -> Dict[str, Any]:
    owner, warden, student1, student2 = accounts[0], accounts[3], accounts[8], accounts[9]
    address = address or client.deploy("CollegeBreakfast", owner, warden)
    portal = client.contract(address, warden)

    portal.register_student(student1)
    portal.register_student(student2)
    portal.open_portal()
    for student, item in [(student1, "Dosa"), (student1, "Coffee"), (student2, "Idli")]:
        logger.info("%s orders %s", student, item)
        portal.connect(student).order_food(item)
    portal.close_portal()

    summary = {
        "total_orders": portal.get_total_orders(),
        "order_counts": {s: portal.get_student_order_count(s) for s in (student1, student2)},
        "last_orders": {s: portal.get_last_order(s) for s in (student1, student2)},
    }
    logger.info("Breakfast orders today: %d", summary["total_orders"])
    return summary


DEMOS = {
    "wallet": ("Wallet", run_wallet_demo),
    "snacks": ("HostelSnacks", run_snacks_demo),
    "exam": ("TestExam", run_exam_demo),
    "breakfast": ("CollegeBreakfast", run_breakfast_demo),
}


def run_master_demo(client: ChainClient, output: str = "deployment.json") -> Dict[str, Any]:
    deployer = ContractDeployer(client)
    deployer.initialize()
    deployer.deploy_all()
    deployer.save_deployment_info(output)

    results = {}
    for key, (name, demo) in DEMOS.items():
        logger.info("=== %s demo ===", name)
        results[key] = demo(client, deployer.accounts, deployer.get_contract_address(name))
    logger.info("All payment demos completed successfully")
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Deploy and exercise the campus contracts")
    parser.add_argument("command", choices=["deploy", "all"] + sorted(DEMOS))
    parser.add_argument("--url", default=os.getenv("CHAIN_API_URL", DEFAULT_URL))
    parser.add_argument("--output", default=os.getenv("DEPLOYMENT_FILE", "deployment.json"))
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    client = ChainClient(args.url)
    try:
        if args.command == "deploy":
            deployer = ContractDeployer(client)
            deployer.initialize()
            deployer.deploy_all()
            deployer.save_deployment_info(args.output)
        elif args.command == "all":
            run_master_demo(client, args.output)
        else:
            accounts = [a["address"] for a in client.accounts()]
            DEMOS[args.command][1](client, accounts)
    except TransactionFailed as e:
        logger.error("Demo failed: %s (%s)", e.reason, e.error)
        return 1
    except (ClientError, httpx.HTTPError) as e:
        logger.error("Demo failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
