import contextlib
import logging
import os

import graphviz

logger = logging.getLogger(__name__)


class CircuitVisualizer:
    """
    负责将合规谓词电路转化为可视化的电路图。
    Draws the compiled ComplianceCircuit: witness inputs on the left, one
    gate per constraint, all feeding the final ACCEPT node.
    """

    def __init__(self, circuit, name="Compliance"):
        self.circuit = circuit
        self.name = f"{name}_Circuit_N{circuit.n}"
        self.dot = graphviz.Digraph(comment=self.name, format="png")
        self.dot.attr(rankdir="LR", bgcolor="white")
        self.node_count = 0
        self._target = self.dot

    @contextlib.contextmanager
    def cluster(self, name, label, color):
        with self.dot.subgraph(name=f"cluster_{name}") as sub:
            sub.attr(label=label, style="dashed", color=color)
            self._target = sub
            try:
                yield sub
            finally:
                self._target = self.dot

    def add_node(self, label, shape="circle", color="black", style="solid", fontcolor="black"):
        node_id = f"n_{self.node_count}"
        self._target.node(node_id, label, shape=shape, color=color, style=style, fontcolor=fontcolor)
        self.node_count += 1
        return node_id

    def add_gate(self, input_nodes, operation, output_label, color="orange"):
        gate_id = f"gate_{self.node_count}"
        self.node_count += 1
        self._target.node(gate_id, operation, shape="note", style="filled", fillcolor=color, fontcolor="white")

        out_id = self.add_node(output_label, shape="ellipse", color="gray", style="dashed")
        for inp in input_nodes:
            self._target.edge(inp, gate_id, arrowsize="0.5")
        self._target.edge(gate_id, out_id, arrowsize="0.5")
        return out_id

    def build(self):
        c = self.circuit
        self.dot.attr(label=f"Compliance Predicate (N={c.n}, digest {c.digest()[:12]})",
                      labelloc="t", fontsize="20")

        # 见证输入
        img_in = self.add_node("Image_in", shape="doublecircle", color="blue", fontcolor="blue")
        img_out = self.add_node("Image_out", shape="doublecircle", color="blue", fontcolor="blue")
        t = self.add_node("T", shape="doublecircle", color="blue", fontcolor="blue")
        pk_in = self.add_node("PK_in", shape="box", style="filled", color="lightgrey")
        pk_out = self.add_node("PK_out", shape="box", style="filled", color="lightgrey")
        anchor_in = self.add_node("Signature | Prior proof", shape="cylinder", color="gold")

        outputs = []

        with self.cluster("dimensions", "Dimensions", "gray"):
            outputs.append(self.add_gate([img_in, img_out], f"SHAPE == {c.n}x{c.n}", "dims_ok"))

        with self.cluster("anchor", "Anchor (base case / recursion)", "gold"):
            outputs.append(self.add_gate([anchor_in, img_in, pk_in], "VERIFY", "anchor_ok", color="goldenrod"))

        # 乘积形式的成员检查: prod(1 - isZero(p_i - T)) == 0
        with self.cluster("membership", "Permissible membership", "purple"):
            acc = self.add_node("1", shape="box")
            for p in c.permissible_ids:
                const = self.add_node(f"p={p}", shape="box", style="filled", color="lightgrey")
                diff = self.add_gate([const, t], "SUB", f"p{p}-T")
                ind = self.add_gate([diff], "1 - IsZero", f"ind_{p}", color="purple")
                acc = self.add_gate([acc, ind], "MUL", f"acc_{p}")
            outputs.append(self.add_gate([acc], "EQ_ZERO", "permissible_ok", color="red"))

        with self.cluster("transformation", "Transformation check", "green"):
            applied = self.add_gate([img_in, t], "APPLY(T)", "T(Image_in)")
            outputs.append(self.add_gate([applied, img_out], "EQ_ASSERT", "transform_ok", color="red"))

        with self.cluster("continuity", "Identity continuity", "blue"):
            outputs.append(self.add_gate([pk_in, pk_out], "EQ_ASSERT", "continuity_ok", color="red"))

        accept = self.add_gate(outputs, "AND", "ACCEPT", color="darkgreen")
        return accept

    def render(self, output_dir="demo_output"):
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, self.name)
        try:
            output_path = self.dot.render(path, cleanup=True)
        except graphviz.ExecutableNotFound:
            # no Graphviz binaries: keep the dot source instead
            logger.warning("Graphviz executable not found, writing %s.dot", path)
            with open(path + ".dot", "w") as f:
                f.write(self.dot.source)
            return path + ".dot"
        logger.info("circuit diagram written to %s", output_path)
        return output_path
