import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nfd_master.api_gateway.ca import generate_ca, generate_node_cert, load_key_cert, save_key_cert


def main():
    parser = argparse.ArgumentParser(description="Generate mutual TLS material for the NFD master and its workers.")
    parser.add_argument("--out", default=os.path.join(os.path.dirname(__file__), "..", "certs"))
    parser.add_argument("--master-host", action="append", default=[], help="DNS name of the master (repeatable)")
    parser.add_argument("nodes", nargs="*", help="node names to issue worker certificates for")
    args = parser.parse_args()

    os.makedirs(args.out, exist_ok=True)
    ca_prefix = os.path.join(args.out, "ca")

    # Generate CA if doesn't exist
    if not os.path.exists(f"{ca_prefix}.key") or not os.path.exists(f"{ca_prefix}.crt"):
        print("[+] Generating NFD root CA...")
        ca_key, ca_cert = generate_ca()
        save_key_cert(ca_prefix, ca_key, ca_cert)
    else:
        print("[*] CA already exists, skipping CA generation.")
        ca_key, ca_cert = load_key_cert(ca_prefix)

    master_prefix = os.path.join(args.out, "nfd-master")
    if not os.path.exists(f"{master_prefix}.key"):
        print("[+] Generating master server certificate...")
        hosts = args.master_host or ["nfd-master", "localhost"]
        key, cert = generate_node_cert("nfd-master", ca_key, ca_cert, server=True, san_names=hosts)
        save_key_cert(master_prefix, key, cert)
    else:
        print("[*] Master certificate already exists, skipping.")

    for node in args.nodes:
        print(f"[+] Generating worker certificate for node {node}...")
        key, cert = generate_node_cert(node, ca_key, ca_cert)
        save_key_cert(os.path.join(args.out, f"nfd-worker-{node}"), key, cert)

    print(f"[*] Certificates written to {os.path.abspath(args.out)}")


if __name__ == "__main__":
    main()
