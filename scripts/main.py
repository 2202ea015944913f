import argparse
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from photoproof import config
from photoproof.circuit_visualizer import CircuitVisualizer
from photoproof.compliance import CompliancePredicate, PublicWitness
from photoproof.errors import PhotoProofError
from photoproof.generator import generate, sign
from photoproof.image import Image
from photoproof.keys import (
    VerificationContext,
    load_proving_key,
    load_signing_key,
    load_verifying_key,
    save_keys,
)
from photoproof.proof import PCDProof, proof_from_bytes, proof_to_bytes
from photoproof.prover import Prover
from photoproof.transformations import TransformationKind, from_dict, parse_transformation, permissible_set
from photoproof.verifier import Verifier


def _read_image(path, n=None):
    """读取图像：.json 为规范编码，其他格式经 Pillow 转为灰度 N x N"""
    if path.endswith('.json'):
        with open(path, 'rb') as f:
            return Image.decode(f.read())
    return Image.from_file(path, n or config.DEFAULT_IMAGE_SIZE)


def _write(path, data):
    with open(path, 'wb') as f:
        f.write(data)
    print(f"已写入: {path}")


def cmd_setup(args):
    """[可信方] Generator: 生成签名密钥与 PCD 密钥"""
    genesis = Image.create(args.size)
    entropy = args.entropy.encode() if args.entropy else None
    bundle = generate(genesis, permissible_set(args.permissible), entropy=entropy)
    paths = save_keys(bundle, args.keys_dir)
    print(f"密钥已生成 (N={args.size}, 允许变换: {', '.join(args.permissible)})")
    for name, path in paths.items():
        print(f"  {name}: {path}")
    return 0


def cmd_capture(args):
    """[相机] 拍照并签名"""
    signing_key = load_signing_key(args.keys_dir)
    if args.input:
        image = _read_image(args.input, args.size)
    else:
        image = Image.create(args.size, fill=args.fill, seed=args.seed)
    if args.author:
        image = image.with_metadata(author=args.author)
    proof = sign(image, signing_key)
    _write(args.out_image, image.encode())
    _write(args.out_proof, proof_to_bytes(proof))
    return 0


def cmd_edit(args):
    """[编辑者] 施加变换并生成新的 PCD 证明"""
    proving_key = load_proving_key(args.keys_dir)
    image = _read_image(args.image)
    with open(args.proof, 'rb') as f:
        proof = proof_from_bytes(f.read())

    for text in args.transform:
        transformation = parse_transformation(text)
        image_next = transformation.apply(image)
        proof = Prover().prove(proof, image, image_next, transformation, proving_key)
        print(f"✅ 变换 {transformation} 已证明")
        image = image_next

    _write(args.out_image, image.encode())
    _write(args.out_proof, proof_to_bytes(proof))
    if args.png:
        image.save(args.png)
    return 0


def cmd_verify(args):
    """[验证者] 检查 (image, proof)"""
    context = VerificationContext.from_verifying_key(load_verifying_key(args.keys_dir))
    image = _read_image(args.image)
    with open(args.proof, 'rb') as f:
        proof = proof_from_bytes(f.read())
    is_valid, reason = Verifier().check(context, image, proof)
    print(f"{'✅' if is_valid else '❌'} {reason}")
    if is_valid and isinstance(proof, PCDProof):
        public = PublicWitness.from_bytes(proof.public_witness)
        print(f"   最后一步变换: {from_dict(public.transformation)}")
    return 0 if is_valid else 1


def cmd_circuit(args):
    """渲染合规谓词电路图"""
    permissible = permissible_set(args.permissible)
    circuit = CompliancePredicate().arithmetize(permissible, args.size)
    visualizer = CircuitVisualizer(circuit)
    visualizer.build()
    print(f"电路图: {visualizer.render(args.output_dir)}")
    return 0


def build_parser():
    kinds = [k.name.lower() for k in TransformationKind]
    parser = argparse.ArgumentParser(
        description="PhotoProof - 基于 PCD 的图像编辑认证",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例:
  python scripts/main.py setup --size 8 --permissible identity contrast_increment
  python scripts/main.py capture --out-image img0.json --out-proof proof0.json
  python scripts/main.py edit --image img0.json --proof proof0.json --transform contrast:1
  python scripts/main.py verify --image img1.json --proof proof1.json
        """
    )
    parser.add_argument('--keys-dir', default=config.KEYS_DIR, help='密钥目录')
    parser.add_argument('--verbose', action='store_true', help='输出调试日志')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('setup', help='生成密钥 (Generator)')
    p.add_argument('--size', type=int, default=config.DEFAULT_IMAGE_SIZE, help='图像边长 N')
    p.add_argument('--permissible', nargs='+', default=['identity'], choices=kinds, help='允许的变换')
    p.add_argument('--entropy', default=None, help='可复现 setup 的熵 (可选)')
    p.set_defaults(func=cmd_setup)

    p = sub.add_parser('capture', help='相机拍照并签名')
    p.add_argument('--input', help='输入照片 (任意 Pillow 格式或 .json)')
    p.add_argument('--size', type=int, default=config.DEFAULT_IMAGE_SIZE)
    p.add_argument('--fill', choices=['constant', 'random'], default='constant')
    p.add_argument('--seed', type=int, default=None)
    p.add_argument('--author', default=None)
    p.add_argument('--out-image', default='image.json')
    p.add_argument('--out-proof', default='proof.json')
    p.set_defaults(func=cmd_capture)

    p = sub.add_parser('edit', help='施加变换并证明')
    p.add_argument('--image', required=True)
    p.add_argument('--proof', required=True)
    p.add_argument('--transform', action='append', required=True,
                   help='identity | contrast:<delta> | author:<name> (可重复)')
    p.add_argument('--out-image', default='edited.json')
    p.add_argument('--out-proof', default='edited_proof.json')
    p.add_argument('--png', default=None, help='同时导出 PNG')
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser('verify', help='验证图像与证明')
    p.add_argument('--image', required=True)
    p.add_argument('--proof', required=True)
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser('circuit', help='渲染合规谓词电路图')
    p.add_argument('--size', type=int, default=config.DEFAULT_IMAGE_SIZE)
    p.add_argument('--permissible', nargs='+', default=['identity'], choices=kinds)
    p.add_argument('--output-dir', default='demo_output')
    p.set_defaults(func=cmd_circuit)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        return args.func(args)
    except (PhotoProofError, OSError) as e:
        print(f"❌ {type(e).__name__}: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
