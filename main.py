import os
from photoproof import (
    CameraSession,
    ChangeAuthor,
    ConfigurationError,
    ContrastIncrement,
    Identity,
    Image,
    TransformationKind,
)
from photoproof.circuit_visualizer import CircuitVisualizer
from photoproof.compliance import CompliancePredicate

# 配置
OUTPUT_DIR = "demo_output"
N = 3


def run_full_stack_demo():
    print("=" * 60)
    print("PhotoProof: 基于 PCD 的图像编辑认证")
    print("   1. Camera Signature (信任根)")
    print("   2. Compliance Predicate (可允许变换)")
    print("   3. PCD Proof (签名 -> 证明 -> 证明 ...)")
    print("=" * 60)
    os.makedirs(OUTPUT_DIR, exist_ok=True)

    genesis = Image.create(N, value=5, metadata={"author": "A"})

    # ==========================================
    # 场景 1: 相机签名
    # ==========================================
    print("\n📷 [Camera] 生成密钥 (permissible = {Identity}) 并签名原始图像...")
    camera = CameraSession.provision(genesis, {TransformationKind.IDENTITY})
    i0, sig = camera.capture(genesis)
    verifier = camera.verifier_session()
    ok, msg = verifier.check(i0, sig)
    print(f"   {'✅' if ok else '❌'} {msg}")

    # ==========================================
    # 场景 2: 对比度 +1，签名升级为 PCD 证明
    # ==========================================
    print("\n🖌️  [Editor] permissible = {ContrastIncrement, Identity}，执行对比度 +1 ...")
    camera = CameraSession.provision(genesis, {TransformationKind.CONTRAST_INCREMENT,
                                               TransformationKind.IDENTITY})
    i0, sig = camera.capture(genesis)
    verifier = camera.verifier_session()
    with camera.editor_session() as editor:
        i1, proof1 = editor.edit(i0, sig, ContrastIncrement(1))
        ok, msg = verifier.check(i1, proof1)
        print(f"   {'✅' if ok else '❌'} {msg}")

        tampered = i1.with_pixels([[7] + [6] * (N - 1)] + [[6] * N] * (N - 1))
        ok, msg = verifier.check(tampered, proof1)
        print(f"   篡改像素后: {'✅' if ok else '❌'} {msg}")

        # 多步组合: 在已有 PCD 证明上继续编辑
        job = editor.prove_async(i1, proof1, Identity())
        i2, proof2 = job.result()
        ok, msg = verifier.check(i2, proof2)
        print(f"   再次编辑 (Identity): {'✅' if ok else '❌'} {msg}")

    # ==========================================
    # 场景 3: 不允许的变换
    # ==========================================
    print("\n🚫 [Editor] permissible = {Identity}，尝试修改作者 ...")
    camera = CameraSession.provision(genesis, {TransformationKind.IDENTITY})
    i0, sig = camera.capture(genesis)
    with camera.editor_session() as editor:
        try:
            editor.edit(i0, sig, ChangeAuthor("B"))
            print("   ❌ 不应到达这里")
        except ConfigurationError as e:
            print(f"   ✅ 已拒绝: {e}")

    # 电路可视化
    circuit = CompliancePredicate().arithmetize(
        frozenset({TransformationKind.IDENTITY, TransformationKind.CONTRAST_INCREMENT}), N)
    visualizer = CircuitVisualizer(circuit)
    visualizer.build()
    print(f"\n📊 [Visualizer] 电路图: {visualizer.render(os.path.join(OUTPUT_DIR, 'circuits'))}")

    print("\n所有演示结束。")


if __name__ == "__main__":
    run_full_stack_demo()
